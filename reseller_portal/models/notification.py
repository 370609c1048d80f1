from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from reseller_portal.core.database import Base


class NotificationType(str, enum.Enum):
    CUSTOMER_CREATED = "CUSTOMER_CREATED"
    CUSTOMER_STATUS_CHANGED = "CUSTOMER_STATUS_CHANGED"
    COMMISSION_APPROVED = "COMMISSION_APPROVED"
    COMMISSION_REJECTED = "COMMISSION_REJECTED"
    COMMISSION_PAID = "COMMISSION_PAID"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)

    type = Column(SQLEnum(NotificationType), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    payload = Column(JSON, nullable=True)

    read = Column(Boolean, nullable=False, default=False)
    email_sent = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    user = relationship("User", back_populates="notifications")
