from sqlalchemy import Column, String, DateTime, Integer, Numeric, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from reseller_portal.core.database import Base


class CustomerStatus(str, enum.Enum):
    LEAD = "LEAD"
    PROSPECT = "PROSPECT"
    ACTIVE = "ACTIVE"
    NO_DEAL = "NO_DEAL"
    CANCELLED = "CANCELLED"


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    reseller_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)

    company_name = Column(String(255), nullable=False)
    contact_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    status = Column(SQLEnum(CustomerStatus), nullable=False, default=CustomerStatus.LEAD, index=True)

    # Contract terms, written once by deal closure
    contract_value = Column(Numeric(12, 2), nullable=True)
    contract_duration = Column(Integer, nullable=True)  # years
    closed_at = Column(DateTime, nullable=True)
    closed_by_id = Column(String, ForeignKey("users.id"), nullable=True)
    contract_ended_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    reseller = relationship("User", back_populates="customers", foreign_keys=[reseller_id])
    commissions = relationship("Commission", back_populates="customer", order_by="Commission.year_number")
