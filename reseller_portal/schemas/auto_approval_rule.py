from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class AutoApprovalRuleBase(BaseModel):
    description: Optional[str] = None
    enabled: bool = True
    priority: int = 0
    max_amount: Optional[Decimal] = Field(None, ge=0)
    trusted_resellers_only: bool = False


class AutoApprovalRuleCreate(AutoApprovalRuleBase):
    name: str


class AutoApprovalRuleUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    enabled: Optional[bool] = None
    priority: Optional[int] = None
    max_amount: Optional[Decimal] = Field(None, ge=0)
    trusted_resellers_only: Optional[bool] = None


class AutoApprovalRuleResponse(AutoApprovalRuleBase):
    id: str
    name: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
