import logging
from sqlalchemy.orm import Session
from decimal import Decimal
from typing import Any, Dict, List, Optional

from reseller_portal.core.exceptions import NotFoundError, ValidationError
from reseller_portal.models.auto_approval_rule import AutoApprovalRule
from reseller_portal.services.audit_service import AuditService
from reseller_portal.services.side_effects import AuditRecorder, emit_audit_fact

logger = logging.getLogger(__name__)

RULE_FIELDS = ("name", "description", "enabled", "priority", "max_amount", "trusted_resellers_only")


def rule_as_dict(rule: AutoApprovalRule) -> Dict[str, Any]:
    return {field: getattr(rule, field) for field in RULE_FIELDS}


class RuleService:
    """Admin-configured auto-approval rules"""

    def __init__(self, db: Session, auditor: Optional[AuditRecorder] = None):
        self.db = db
        self.auditor = auditor or AuditService(db)

    def lookup_rules(self) -> List[AutoApprovalRule]:
        """All rules, oldest first, as one consistent read"""
        return self.db.query(AutoApprovalRule).order_by(AutoApprovalRule.created_at.asc()).all()

    def list_rules(self) -> List[AutoApprovalRule]:
        return self.db.query(AutoApprovalRule).order_by(
            AutoApprovalRule.priority.desc(),
            AutoApprovalRule.created_at.asc()
        ).all()

    def get_rule(self, rule_id: str) -> AutoApprovalRule:
        rule = self.db.query(AutoApprovalRule).filter(AutoApprovalRule.id == rule_id).first()
        if not rule:
            raise NotFoundError("Rule not found", details={"rule_id": rule_id})
        return rule

    @staticmethod
    def _validate(values: Dict[str, Any]) -> Dict[str, Any]:
        if "name" in values:
            name = (values["name"] or "").strip()
            if not name:
                raise ValidationError("Rule name is required", details={"field": "name"})
            values["name"] = name

        if "description" in values:
            values["description"] = (values["description"] or "").strip() or None

        if values.get("max_amount") is not None:
            max_amount = Decimal(str(values["max_amount"]))
            if max_amount < 0:
                raise ValidationError("Max amount must be positive", details={"field": "max_amount"})
            values["max_amount"] = max_amount

        return values

    def create_rule(self, values: Dict[str, Any], performed_by: str) -> AutoApprovalRule:
        values = self._validate({k: v for k, v in values.items() if k in RULE_FIELDS})
        if "name" not in values:
            raise ValidationError("Rule name is required", details={"field": "name"})

        rule = AutoApprovalRule(
            name=values["name"],
            description=values.get("description"),
            enabled=values.get("enabled", True) is not False,
            priority=values.get("priority") or 0,
            max_amount=values.get("max_amount"),
            trusted_resellers_only=values.get("trusted_resellers_only") is True
        )
        self.db.add(rule)
        self.db.commit()
        self.db.refresh(rule)

        logger.info("Auto-approval rule %s created by %s", rule.id, performed_by)
        emit_audit_fact(
            self.auditor,
            action="AUTO_APPROVAL_RULE_CREATED",
            performed_by=performed_by,
            entity_type="AutoApprovalRule",
            entity_id=rule.id,
            changes=rule_as_dict(rule)
        )
        return rule

    def update_rule(self, rule_id: str, values: Dict[str, Any], performed_by: str) -> AutoApprovalRule:
        rule = self.get_rule(rule_id)
        before = rule_as_dict(rule)
        values = self._validate({k: v for k, v in values.items() if k in RULE_FIELDS})

        for field, value in values.items():
            setattr(rule, field, value)

        self.db.commit()
        self.db.refresh(rule)

        emit_audit_fact(
            self.auditor,
            action="AUTO_APPROVAL_RULE_UPDATED",
            performed_by=performed_by,
            entity_type="AutoApprovalRule",
            entity_id=rule.id,
            changes={"before": before, "after": values}
        )
        return rule

    def delete_rule(self, rule_id: str, performed_by: str) -> None:
        rule = self.get_rule(rule_id)
        snapshot = rule_as_dict(rule)

        self.db.delete(rule)
        self.db.commit()

        emit_audit_fact(
            self.auditor,
            action="AUTO_APPROVAL_RULE_DELETED",
            performed_by=performed_by,
            entity_type="AutoApprovalRule",
            entity_id=rule_id,
            changes=snapshot
        )
