"""
Database Initialization Script
Creates all Refrr tables and, optionally, a first admin account
"""

import asyncio
import os

from refrr.core.database import AsyncSessionLocal, engine
from refrr.core.tables import metadata
from refrr.models.user import UserRole
from refrr.services.auth_service import AuthService


async def create_tables(bind=engine):
    """Create every table that does not exist yet"""
    async with bind.begin() as conn:
        await conn.run_sync(metadata.create_all)


async def seed_admin(email: str, password: str):
    """Create the admin account unless the email is taken"""
    async with AsyncSessionLocal() as session:
        auth_service = AuthService(session)
        if await auth_service.user_exists(email):
            print(f"Admin {email} already exists")
            return
        await auth_service.create_user(email=email, password=password, role=UserRole.ADMIN)
        await session.commit()
        print(f"Admin {email} created")


async def init_database():
    """Initialize database"""
    try:
        print("Creating tables...")
        await create_tables()
        print("Tables created successfully")

        admin_email = os.getenv("ADMIN_EMAIL")
        admin_password = os.getenv("ADMIN_PASSWORD")
        if admin_email and admin_password:
            await seed_admin(admin_email, admin_password)

        print("Database initialization completed!")

    except Exception as e:
        print(f"Error initializing database: {e}")
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init_database())
