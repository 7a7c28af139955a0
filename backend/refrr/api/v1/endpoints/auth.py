"""
Authentication Endpoints
"""

from fastapi import APIRouter, Depends, status

from refrr.core.database import get_database
from refrr.core.exceptions import Unauthorized, ValidationFailed
from refrr.services.auth_service import AuthService, get_current_user, get_user_by_id, issue_tokens, verify_token
from refrr.services.business_service import create_business
from refrr.models.user import BusinessRegister, RefreshRequest, Token, User, UserCreate, UserInDB, UserLogin, UserRole

router = APIRouter()


def _token_response(user: UserInDB) -> Token:
    return Token(**issue_tokens(user), user=User(**user.model_dump()))


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register_business(
    data: BusinessRegister,
    db = Depends(get_database)
):
    """Register a business account together with its business profile"""
    auth_service = AuthService(db)

    if await auth_service.user_exists(data.email):
        raise ValidationFailed("Email already registered")

    user = await auth_service.create_user(
        email=data.email,
        password=data.password,
        role=UserRole.BUSINESS,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    await create_business(
        db,
        user_id=user.id,
        name=data.business_name,
        contact_email=data.email,
        business_type=data.business_type,
        industry=data.industry,
        website=data.website,
        description=data.description,
    )
    return _token_response(user)


@router.post("/register/customer", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register_customer(
    data: UserCreate,
    db = Depends(get_database)
):
    """Register a customer (referrer) account"""
    auth_service = AuthService(db)

    if await auth_service.user_exists(data.email):
        raise ValidationFailed("Email already registered")

    user = await auth_service.create_user(
        email=data.email,
        password=data.password,
        role=UserRole.CUSTOMER,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    return _token_response(user)


@router.post("/login", response_model=Token)
async def login(
    credentials: UserLogin,
    db = Depends(get_database)
):
    """Login user"""
    auth_service = AuthService(db)

    user = await auth_service.authenticate_user(credentials.email, credentials.password)
    if not user:
        raise Unauthorized("Incorrect email or password")
    if not user.is_active:
        raise Unauthorized("Account is disabled")

    return _token_response(user)


@router.post("/refresh", response_model=Token)
async def refresh_token(
    data: RefreshRequest,
    db = Depends(get_database)
):
    """Exchange a refresh token for a new token pair"""
    token_data = verify_token(data.refresh_token, token_type="refresh")

    user = await get_user_by_id(db, token_data.user_id)
    if not user or not user.is_active:
        raise Unauthorized("Invalid refresh token")

    return _token_response(user)


@router.get("/me", response_model=User)
async def read_current_user(current_user: UserInDB = Depends(get_current_user)):
    return current_user
