"""
Authentication Service
"""

from datetime import timedelta
from typing import List, Optional
from uuid import UUID, uuid4

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import func, select

from refrr.core.config import settings
from refrr.core.database import get_database, utcnow
from refrr.core.exceptions import Forbidden, Unauthorized
from refrr.core.tables import users
from refrr.models.business import CurrentBusiness
from refrr.models.user import TokenData, UserInDB, UserRole
from refrr.services.business_service import get_business_by_user

logger = structlog.get_logger()

# Password hashing
# pbkdf2_sha256 is primary; bcrypt hashes are still accepted on login
pwd_context = CryptContext(
    schemes=["pbkdf2_sha256", "bcrypt"],
    deprecated="auto",
    pbkdf2_sha256__default_rounds=settings.PASSWORD_HASH_ROUNDS,
)

# JWT security
security = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using pbkdf2_sha256"""
    return pwd_context.hash(password)


def _token_claims(user: UserInDB) -> dict:
    return {"sub": str(user.id), "email": user.email, "role": user.role.value}


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_refresh_token(data: dict) -> str:
    """Create JWT refresh token"""
    to_encode = data.copy()
    expire = utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    to_encode.update({"exp": expire, "type": "refresh"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def issue_tokens(user: UserInDB) -> dict:
    """Access + refresh token pair for a user"""
    claims = _token_claims(user)
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims),
        "token_type": "bearer",
    }


def verify_token(token: str, token_type: str = "access") -> TokenData:
    """Verify JWT token and return token data"""
    credentials_exception = Unauthorized("Could not validate credentials")

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise credentials_exception

    user_id = payload.get("sub")
    email = payload.get("email")
    role = payload.get("role")
    if user_id is None or email is None or role is None or payload.get("type") != token_type:
        raise credentials_exception

    try:
        return TokenData(user_id=UUID(user_id), email=email, role=UserRole(role))
    except ValueError:
        raise credentials_exception


async def get_user_by_id(db, user_id: UUID) -> Optional[UserInDB]:
    """Get user by ID"""
    result = await db.execute(select(users).where(users.c.id == user_id))
    row = result.first()
    if not row:
        return None
    return UserInDB(**row._mapping)


async def _user_from_credentials(db, credentials: HTTPAuthorizationCredentials) -> UserInDB:
    token_data = verify_token(credentials.credentials)
    user = await get_user_by_id(db, token_data.user_id)
    if user is None:
        raise Unauthorized("User not found")
    if not user.is_active:
        raise Forbidden("Account is disabled. Please contact support.")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db = Depends(get_database)
) -> UserInDB:
    """Get current authenticated user"""
    if credentials is None:
        raise Unauthorized("Authentication required")
    return await _user_from_credentials(db, credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db = Depends(get_database)
) -> Optional[UserInDB]:
    """Authenticated user when a token is sent, None for anonymous callers"""
    if credentials is None:
        return None
    return await _user_from_credentials(db, credentials)


async def require_business(
    current_user: UserInDB = Depends(get_current_user),
    db = Depends(get_database)
) -> CurrentBusiness:
    """Resolve which business the caller acts as"""
    if current_user.role != UserRole.BUSINESS:
        raise Forbidden("Business account required")
    business = await get_business_by_user(db, current_user.id)
    if business is None:
        raise Forbidden("No business profile for this account")
    return CurrentBusiness(user=current_user, business=business)


async def require_customer(current_user: UserInDB = Depends(get_current_user)) -> UserInDB:
    if current_user.role != UserRole.CUSTOMER:
        raise Forbidden("Customer account required")
    return current_user


async def require_admin(current_user: UserInDB = Depends(get_current_user)) -> UserInDB:
    if current_user.role != UserRole.ADMIN:
        raise Forbidden("Access denied. Admin privileges required.")
    return current_user


class AuthService:
    """Authentication service"""

    def __init__(self, db):
        self.db = db

    async def authenticate_user(self, email: str, password: str) -> Optional[UserInDB]:
        """Authenticate user with email and password"""
        user = await self.get_user_by_email(email)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    async def get_user_by_email(self, email: str) -> Optional[UserInDB]:
        result = await self.db.execute(
            select(users).where(func.lower(users.c.email) == email.lower())
        )
        row = result.first()
        if not row:
            return None
        return UserInDB(**row._mapping)

    async def user_exists(self, email: str) -> bool:
        """Check if user exists"""
        return await self.get_user_by_email(email) is not None

    async def create_user(
        self,
        email: str,
        password: str,
        role: UserRole,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> UserInDB:
        """Create a new user in the database"""
        now = utcnow()
        result = await self.db.execute(
            users.insert()
            .values(
                id=uuid4(),
                email=email,
                password_hash=get_password_hash(password),
                first_name=first_name,
                last_name=last_name,
                role=role.value,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            .returning(*users.c)
        )
        user = UserInDB(**result.one()._mapping)
        logger.info("User created", user_id=str(user.id), role=user.role.value)
        return user

    async def list_users(self) -> List[UserInDB]:
        result = await self.db.execute(select(users).order_by(users.c.created_at.desc()))
        return [UserInDB(**row._mapping) for row in result.all()]
