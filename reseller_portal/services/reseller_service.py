from sqlalchemy.orm import Session
from decimal import Decimal
from typing import Any, Dict, Optional

from reseller_portal.core.exceptions import NotFoundError, ValidationError
from reseller_portal.models.user import User, UserRole
from reseller_portal.services.audit_service import AuditService
from reseller_portal.services.schedule import ResellerSnapshot
from reseller_portal.services.side_effects import AuditRecorder, emit_audit_fact

TERM_FIELDS = ("commission_rate", "commission_years", "is_one_off_payment", "currency")


class ResellerService:
    def __init__(self, db: Session, auditor: Optional[AuditRecorder] = None):
        self.db = db
        self.auditor = auditor or AuditService(db)

    def get_reseller(self, reseller_id: str) -> User:
        reseller = self.db.query(User).filter(User.id == reseller_id).first()
        if not reseller:
            raise NotFoundError("Reseller not found", details={"reseller_id": reseller_id})
        if reseller.role != UserRole.RESELLER:
            raise ValidationError("User is not a reseller", details={"user_id": reseller_id})
        return reseller

    def lookup_reseller_snapshot(self, reseller_id: str) -> ResellerSnapshot:
        return ResellerSnapshot.from_user(self.get_reseller(reseller_id))

    def toggle_trusted(self, reseller_id: str, performed_by: str) -> User:
        """Flip the trusted flag used by trust-gated auto-approval rules"""
        reseller = self.get_reseller(reseller_id)
        reseller.is_trusted = not reseller.is_trusted
        self.db.commit()
        self.db.refresh(reseller)

        emit_audit_fact(
            self.auditor,
            action="USER_MARKED_TRUSTED" if reseller.is_trusted else "USER_UNMARKED_TRUSTED",
            performed_by=performed_by,
            entity_type="User",
            entity_id=reseller.id,
            changes={"is_trusted": reseller.is_trusted}
        )
        return reseller

    def update_commission_terms(self, reseller_id: str, values: Dict[str, Any], performed_by: str) -> User:
        """Change terms for future deals; generated commissions keep their snapshot"""
        reseller = self.get_reseller(reseller_id)
        values = {k: v for k, v in values.items() if k in TERM_FIELDS and v is not None}

        if "commission_rate" in values:
            rate = Decimal(str(values["commission_rate"]))
            if rate < 0 or rate > 100:
                raise ValidationError("Commission rate must be between 0 and 100", details={"field": "commission_rate"})
            values["commission_rate"] = rate
        if "commission_years" in values and int(values["commission_years"]) < 1:
            raise ValidationError("Commission years must be at least 1", details={"field": "commission_years"})

        before = {field: getattr(reseller, field) for field in values}
        for field, value in values.items():
            setattr(reseller, field, value)
        self.db.commit()
        self.db.refresh(reseller)

        emit_audit_fact(
            self.auditor,
            action="USER_COMMISSION_TERMS_UPDATED",
            performed_by=performed_by,
            entity_type="User",
            entity_id=reseller.id,
            changes={"before": before, "after": values}
        )
        return reseller
