from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from reseller_portal.models.user import UserRole


class UserBase(BaseModel):
    email: EmailStr
    name: str
    company: Optional[str] = None
    role: UserRole


class UserResponse(UserBase):
    id: str
    is_active: bool
    commission_rate: Decimal
    commission_years: int
    is_one_off_payment: bool
    is_trusted: bool
    currency: str
    created_at: datetime

    class Config:
        from_attributes = True


class CommissionTermsUpdate(BaseModel):
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    commission_years: Optional[int] = Field(None, ge=1)
    is_one_off_payment: Optional[bool] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
