from sqlalchemy import Column, String, Boolean, DateTime, Integer, Numeric, Text
from datetime import datetime
import uuid

from reseller_portal.core.database import Base


class AutoApprovalRule(Base):
    __tablename__ = "auto_approval_rules"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    enabled = Column(Boolean, nullable=False, default=True)
    priority = Column(Integer, nullable=False, default=0)  # higher is evaluated first

    # Conditions
    max_amount = Column(Numeric(12, 2), nullable=True)  # None means no upper bound
    trusted_resellers_only = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
