import logging
from dataclasses import dataclass, field
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from typing import Dict, List, Optional, Union
from decimal import Decimal
from datetime import datetime

from reseller_portal.models.commission import Commission, CommissionStatus
from reseller_portal.models.notification import NotificationType
from reseller_portal.core.exceptions import AppException, NotFoundError, ValidationError
from reseller_portal.services.audit_service import AuditService
from reseller_portal.services.notification_service import NotificationService
from reseller_portal.services.commission_state import (
    Actor,
    RESELLER_VISIBLE_STATES,
    apply_transition,
)
from reseller_portal.services.side_effects import (
    AuditRecorder,
    Notifier,
    emit_audit_fact,
    emit_notification,
)

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = {
    CommissionStatus.APPROVED: "COMMISSION_APPROVED",
    CommissionStatus.REJECTED: "COMMISSION_REJECTED",
    CommissionStatus.PAID: "COMMISSION_PAID",
    CommissionStatus.CONTRACT_ENDED: "COMMISSION_CONTRACT_ENDED",
}

NOTIFICATION_TYPES = {
    CommissionStatus.APPROVED: NotificationType.COMMISSION_APPROVED,
    CommissionStatus.REJECTED: NotificationType.COMMISSION_REJECTED,
    CommissionStatus.PAID: NotificationType.COMMISSION_PAID,
}

# Admin bulk action names
BULK_ACTIONS = {
    "approve": CommissionStatus.APPROVED,
    "reject": CommissionStatus.REJECTED,
    "mark_paid": CommissionStatus.PAID,
}


@dataclass(frozen=True)
class TransitionOk:
    commission_id: str
    ok: bool = True


@dataclass(frozen=True)
class TransitionErr:
    commission_id: str
    reason: str
    error_code: str = "APP_ERROR"
    ok: bool = False


TransitionOutcome = Union[TransitionOk, TransitionErr]


@dataclass
class BulkTransitionResult:
    target_status: CommissionStatus
    results: List[TransitionOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)


def commission_payload(commission: Commission) -> Dict:
    payload = {
        "commission_id": commission.id,
        "customer_id": commission.customer_id,
        "amount": commission.amount,
        "currency": commission.currency,
        "period": commission.period,
        "status": commission.status.value,
    }
    if commission.status == CommissionStatus.REJECTED:
        payload["rejection_reason"] = commission.rejection_reason
    if commission.status == CommissionStatus.PAID:
        payload["payment_reference"] = commission.payment_reference
    if commission.auto_approved:
        payload["auto_approved"] = True
        payload["auto_approval_rule_id"] = commission.auto_approval_rule_id
    return payload


class CommissionService:
    def __init__(
        self,
        db: Session,
        auditor: Optional[AuditRecorder] = None,
        notifier: Optional[Notifier] = None
    ):
        self.db = db
        self.auditor = auditor or AuditService(db)
        self.notifier = notifier or NotificationService(db)

    def get_commission(self, commission_id: str) -> Commission:
        commission = self.db.query(Commission).filter(Commission.id == commission_id).first()
        if not commission:
            raise NotFoundError("Commission not found", details={"commission_id": commission_id})
        return commission

    def list_commissions(
        self,
        reseller_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        status: Optional[CommissionStatus] = None,
        skip: int = 0,
        limit: int = 20
    ) -> List[Commission]:
        """List commissions"""
        query = self.db.query(Commission)

        if reseller_id:
            query = query.filter(Commission.reseller_id == reseller_id)
        if customer_id:
            query = query.filter(Commission.customer_id == customer_id)
        if status:
            query = query.filter(Commission.status == status)

        return query.order_by(
            Commission.created_at.desc(),
            Commission.year_number.asc()
        ).offset(skip).limit(limit).all()

    def transition_commission(
        self,
        commission_id: str,
        target_status: CommissionStatus,
        actor_role: Actor,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
        payment_reference: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Commission:
        """Move one commission to `target_status` and emit its side effects"""
        target_status = CommissionStatus(target_status)
        actor_role = Actor(actor_role)
        if actor_role == Actor.CONTRACT_TERMINATION:
            # Contract termination sweeps whole customers through DealService.end_contract
            raise ValidationError("Contract termination is not a per-commission action")

        commission = self.get_commission(commission_id)
        previous_status = commission.status

        try:
            apply_transition(
                commission,
                target_status,
                actor_role,
                actor_id=actor_id,
                reason=reason,
                payment_reference=payment_reference
            )
            if notes:
                commission.notes = notes
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(commission)
        logger.info(
            "Commission %s moved %s -> %s by %s",
            commission.id, previous_status.value, target_status.value, actor_role.value
        )
        self._emit(commission, previous_status, actor_id)
        return commission

    def bulk_transition(
        self,
        commission_ids: List[str],
        target_status: CommissionStatus,
        actor_role: Actor,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
        payment_reference: Optional[str] = None
    ) -> BulkTransitionResult:
        """
        Apply the single-commission transition to each id in turn.

        Every item commits on its own; a failing id is reported in the
        results and never rolls back or stops the others.
        """
        target_status = CommissionStatus(target_status)
        result = BulkTransitionResult(target_status=target_status)

        # dict.fromkeys keeps the first occurrence order
        for commission_id in dict.fromkeys(commission_ids):
            try:
                self.transition_commission(
                    commission_id,
                    target_status,
                    actor_role,
                    reason=reason,
                    actor_id=actor_id,
                    payment_reference=payment_reference
                )
            except AppException as e:
                result.results.append(TransitionErr(commission_id, e.message, e.error_code))
            except SQLAlchemyError:
                logger.exception("Bulk %s failed for commission %s", target_status.value, commission_id)
                result.results.append(TransitionErr(commission_id, "Database error", "DATABASE_ERROR"))
            else:
                result.results.append(TransitionOk(commission_id))

        logger.info(
            "Bulk %s: %d succeeded, %d failed",
            target_status.value, result.succeeded, result.failed
        )
        return result

    def _emit(self, commission: Commission, previous_status: CommissionStatus, actor_id: Optional[str]):
        changes = {
            "from": previous_status.value,
            "to": commission.status.value,
            "amount": commission.amount,
            "period": commission.period,
        }
        if commission.rejection_reason and commission.status == CommissionStatus.REJECTED:
            changes["rejection_reason"] = commission.rejection_reason
        if commission.payment_reference and commission.status == CommissionStatus.PAID:
            changes["payment_reference"] = commission.payment_reference

        emit_audit_fact(
            self.auditor,
            action=AUDIT_ACTIONS[commission.status],
            performed_by=actor_id,
            entity_type="Commission",
            entity_id=commission.id,
            changes=changes
        )

        if commission.status in RESELLER_VISIBLE_STATES:
            emit_notification(
                self.notifier,
                user_id=commission.reseller_id,
                type=NOTIFICATION_TYPES[commission.status],
                payload=commission_payload(commission)
            )

    def get_commission_summary(self, reseller_id: str) -> Dict:
        """Totals per status and a per-period breakdown for one reseller"""
        rows = self.db.query(
            Commission.period,
            Commission.status,
            func.sum(Commission.amount)
        ).filter(
            Commission.reseller_id == reseller_id
        ).group_by(Commission.period, Commission.status).all()

        summary = {
            "total_earned": Decimal("0"),
            "total_pending": Decimal("0"),
            "total_approved": Decimal("0"),
            "total_paid": Decimal("0"),
            "total_contract_ended": Decimal("0"),
            "by_period": {},
        }
        totals = {
            CommissionStatus.PENDING: "total_pending",
            CommissionStatus.APPROVED: "total_approved",
            CommissionStatus.PAID: "total_paid",
            CommissionStatus.CONTRACT_ENDED: "total_contract_ended",
        }

        for period, status, amount in rows:
            amount = Decimal(str(amount or 0))
            if status in (CommissionStatus.PENDING, CommissionStatus.APPROVED, CommissionStatus.PAID):
                summary["total_earned"] += amount
                bucket = summary["by_period"].setdefault(
                    period, {"pending": Decimal("0"), "approved": Decimal("0"), "paid": Decimal("0")}
                )
                bucket[status.value.lower()] += amount
            if status in totals:
                summary[totals[status]] += amount

        summary["generated_at"] = datetime.utcnow()
        return summary
