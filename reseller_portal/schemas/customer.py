from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from reseller_portal.models.customer import CustomerStatus
from reseller_portal.schemas.commission import CommissionResponse


class CustomerCreate(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    contact_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    status: Optional[CustomerStatus] = None


class CustomerStatusUpdate(BaseModel):
    status: CustomerStatus


class CustomerResponse(BaseModel):
    id: str
    reseller_id: str
    company_name: str
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: CustomerStatus
    contract_value: Optional[Decimal] = None
    contract_duration: Optional[int] = None
    closed_at: Optional[datetime] = None
    contract_ended_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CloseDealRequest(BaseModel):
    # Bounds are enforced by the schedule generator so errors use one format
    contract_value: Decimal
    contract_duration: Optional[int] = None


class CloseDealResponse(BaseModel):
    customer: CustomerResponse
    commissions_created: int
    total_commission_value: Decimal
    is_one_off_payment: bool
    commissions: List[CommissionResponse]


class EndContractResponse(BaseModel):
    customer: CustomerResponse
    commissions_ended: int
