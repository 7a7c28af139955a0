"""
User (identity store) Models
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from enum import Enum


class UserRole(str, Enum):
    """Account roles"""
    BUSINESS = "business"
    CUSTOMER = "customer"
    ADMIN = "admin"


class UserBase(BaseModel):
    """Base user model"""
    email: EmailStr
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class UserCreate(UserBase):
    """Customer registration model"""
    password: str = Field(..., min_length=6, max_length=100)


class BusinessRegister(UserCreate):
    """Business registration: account plus its business profile"""
    business_name: str = Field(..., min_length=1, max_length=255)
    business_type: Optional[str] = Field(None, max_length=100)
    industry: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None


class UserLogin(BaseModel):
    """User login model"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserInDB(UserBase):
    """User in database model"""
    id: UUID
    password_hash: str
    role: UserRole
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class User(UserBase):
    """User response model"""
    id: UUID
    role: UserRole
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class Token(BaseModel):
    """Token response model"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: Optional[User] = None


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenData(BaseModel):
    """Token payload contract: account id, email and role"""
    user_id: UUID
    email: str
    role: UserRole
