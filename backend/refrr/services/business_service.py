"""
Business Service - business profiles owned by business accounts
"""

from typing import List, Optional
from uuid import UUID, uuid4

import structlog
from sqlalchemy import select

from refrr.core.database import utcnow
from refrr.core.exceptions import Forbidden, NotFound
from refrr.core.tables import businesses
from refrr.models.business import BusinessInDB, BusinessStatus, BusinessUpdate

logger = structlog.get_logger()


async def get_business_by_id(db, business_id: UUID) -> Optional[BusinessInDB]:
    """Get business by ID"""
    result = await db.execute(select(businesses).where(businesses.c.id == business_id))
    row = result.first()
    if not row:
        return None
    return BusinessInDB(**row._mapping)


async def get_business_by_user(db, user_id: UUID) -> Optional[BusinessInDB]:
    """Business owned by an account (1:1)"""
    result = await db.execute(select(businesses).where(businesses.c.user_id == user_id))
    row = result.first()
    if not row:
        return None
    return BusinessInDB(**row._mapping)


async def create_business(
    db,
    user_id: UUID,
    name: str,
    contact_email: Optional[str] = None,
    business_type: Optional[str] = None,
    industry: Optional[str] = None,
    website: Optional[str] = None,
    description: Optional[str] = None,
) -> BusinessInDB:
    """Create the business profile for a freshly registered account"""
    now = utcnow()
    result = await db.execute(
        businesses.insert()
        .values(
            id=uuid4(),
            user_id=user_id,
            name=name,
            business_type=business_type,
            industry=industry,
            website=website,
            description=description,
            contact_email=contact_email,
            notification_email=contact_email,
            status=BusinessStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        .returning(*businesses.c)
    )
    business = BusinessInDB(**result.one()._mapping)
    logger.info("Business created", business_id=str(business.id), user_id=str(user_id))
    return business


async def update_business(db, business_id: UUID, update: BusinessUpdate) -> BusinessInDB:
    """Update business profile fields that were sent"""
    values = update.model_dump(exclude_unset=True)
    if values.get("name", "") is None:
        del values["name"]
    if not values:
        business = await get_business_by_id(db, business_id)
        if not business:
            raise NotFound("Business not found")
        return business

    values["updated_at"] = utcnow()
    result = await db.execute(
        businesses.update()
        .where(businesses.c.id == business_id)
        .values(**values)
        .returning(*businesses.c)
    )
    row = result.first()
    if not row:
        raise NotFound("Business not found")
    return BusinessInDB(**row._mapping)


async def update_business_status(db, business_id: UUID, new_status: BusinessStatus) -> BusinessInDB:
    """Admin action: activate, deactivate or suspend a business"""
    result = await db.execute(
        businesses.update()
        .where(businesses.c.id == business_id)
        .values(status=new_status.value, updated_at=utcnow())
        .returning(*businesses.c)
    )
    row = result.first()
    if not row:
        raise NotFound("Business not found")
    logger.info("Business status changed", business_id=str(business_id), status=new_status.value)
    return BusinessInDB(**row._mapping)


async def list_businesses(db) -> List[BusinessInDB]:
    result = await db.execute(select(businesses).order_by(businesses.c.created_at.desc()))
    return [BusinessInDB(**row._mapping) for row in result.all()]


def ensure_business_active(business: BusinessInDB) -> None:
    """Only active businesses may create campaigns or referrals"""
    if business.status != BusinessStatus.ACTIVE:
        raise Forbidden(f"Business is {business.status.value}")
