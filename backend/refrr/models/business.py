"""
Business Models
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from enum import Enum

from refrr.models.user import UserInDB


class BusinessStatus(str, Enum):
    """Business status"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class BusinessBase(BaseModel):
    """Base business model"""
    name: str = Field(..., max_length=255)
    business_type: Optional[str] = Field(None, max_length=100)
    industry: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    notification_email: Optional[EmailStr] = None


class BusinessUpdate(BaseModel):
    """Business profile update model"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    business_type: Optional[str] = Field(None, max_length=100)
    industry: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    notification_email: Optional[EmailStr] = None


class BusinessStatusUpdate(BaseModel):
    status: BusinessStatus


class BusinessInDB(BusinessBase):
    """Business in database model"""
    id: UUID
    user_id: UUID
    status: BusinessStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class Business(BusinessInDB):
    """Business response model"""
    pass


class CurrentBusiness(BaseModel):
    """Authenticated business account together with the business it acts as"""
    user: UserInDB
    business: BusinessInDB
