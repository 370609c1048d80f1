from sqlalchemy import Column, String, Boolean, DateTime, Integer, Numeric, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from reseller_portal.core.config import settings
from reseller_portal.core.database import Base


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    RESELLER = "reseller"


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    company = Column(String(255), nullable=True)

    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.RESELLER)
    is_active = Column(Boolean, default=True)

    # Reseller commission terms, copied onto each commission at deal closure
    commission_rate = Column(Numeric(5, 2), nullable=False, default=settings.DEFAULT_COMMISSION_RATE)
    commission_years = Column(Integer, nullable=False, default=settings.DEFAULT_COMMISSION_YEARS)
    is_one_off_payment = Column(Boolean, nullable=False, default=False)
    is_trusted = Column(Boolean, nullable=False, default=False)
    currency = Column(String(3), nullable=False, default=settings.DEFAULT_CURRENCY)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    customers = relationship("Customer", back_populates="reseller", foreign_keys="Customer.reseller_id")
    commissions = relationship("Commission", back_populates="reseller", foreign_keys="Commission.reseller_id")
    notifications = relationship("Notification", back_populates="user")
    audit_logs = relationship("AuditLog", back_populates="performed_by")
