from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional
from datetime import datetime
from decimal import Decimal

from reseller_portal.models.commission import CommissionStatus


class CommissionBase(BaseModel):
    reseller_id: str
    customer_id: str
    amount: Decimal
    year_number: int
    period: str
    currency: str


class CommissionResponse(CommissionBase):
    id: str
    status: CommissionStatus
    description: Optional[str] = None
    contract_value: Decimal
    commission_rate: Decimal
    is_one_off_payment: bool
    requested_at: datetime
    approved_at: Optional[datetime] = None
    approved_by_id: Optional[str] = None
    auto_approved: bool = False
    auto_approval_rule_id: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CommissionAction(BaseModel):
    action: Literal["APPROVE", "REJECT", "MARK_PAID"]
    rejection_reason: Optional[str] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None


class BulkCommissionAction(BaseModel):
    commission_ids: List[str] = Field(..., min_length=1)
    action: Literal["approve", "reject", "mark_paid"]
    rejection_reason: Optional[str] = None
    payment_reference: Optional[str] = None


class BulkItemResult(BaseModel):
    commission_id: str
    ok: bool
    reason: Optional[str] = None
    error_code: Optional[str] = None


class BulkCommissionResult(BaseModel):
    action: str
    succeeded: int
    failed: int
    results: List[BulkItemResult]


class PeriodTotals(BaseModel):
    pending: Decimal
    approved: Decimal
    paid: Decimal


class CommissionSummary(BaseModel):
    total_earned: Decimal
    total_pending: Decimal
    total_approved: Decimal
    total_paid: Decimal
    total_contract_ended: Decimal
    by_period: Dict[str, PeriodTotals]
    generated_at: datetime
