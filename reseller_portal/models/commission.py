from sqlalchemy import Column, String, Boolean, DateTime, Integer, Numeric, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from reseller_portal.core.database import Base


class CommissionStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"
    CONTRACT_ENDED = "CONTRACT_ENDED"


class Commission(Base):
    __tablename__ = "commissions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    reseller_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    customer_id = Column(String, ForeignKey("customers.id"), nullable=False, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    year_number = Column(Integer, nullable=False)
    period = Column(String(20), nullable=False)  # "Year 1" or "One-time"
    description = Column(Text, nullable=True)

    status = Column(SQLEnum(CommissionStatus), nullable=False, default=CommissionStatus.PENDING, index=True)

    # Reseller terms at generation time
    contract_value = Column(Numeric(12, 2), nullable=False)
    commission_rate = Column(Numeric(5, 2), nullable=False)
    is_one_off_payment = Column(Boolean, nullable=False, default=False)
    currency = Column(String(3), nullable=False, default="EUR")

    requested_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Approval
    approved_at = Column(DateTime, nullable=True)
    approved_by_id = Column(String, ForeignKey("users.id"), nullable=True)  # None when approved by a rule
    auto_approved = Column(Boolean, nullable=False, default=False)
    auto_approval_rule_id = Column(String, ForeignKey("auto_approval_rules.id", ondelete="SET NULL"), nullable=True)

    # Rejection
    rejected_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    # Payment
    paid_at = Column(DateTime, nullable=True)
    payment_reference = Column(String(255), nullable=True)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    reseller = relationship("User", back_populates="commissions", foreign_keys=[reseller_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    customer = relationship("Customer", back_populates="commissions")
    auto_approval_rule = relationship("AutoApprovalRule")
