"""
Deal closure and contract termination.

close_deal marks a customer ACTIVE and creates its commission schedule in a
single transaction; end_contract sweeps the open commissions of an ACTIVE
customer into CONTRACT_ENDED. Both re-check their precondition under a row
lock so concurrent calls cannot double-generate or double-end. Audit facts
and notifications go out only after commit.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from reseller_portal.core.exceptions import DealAlreadyClosed, NotActiveContract, NotFoundError
from reseller_portal.models.commission import Commission, CommissionStatus
from reseller_portal.models.customer import Customer, CustomerStatus
from reseller_portal.models.notification import NotificationType
from reseller_portal.services.audit_service import AuditService
from reseller_portal.services.auto_approval import apply_decision, evaluate
from reseller_portal.services.commission_service import AUDIT_ACTIONS, commission_payload
from reseller_portal.services.commission_state import OPEN_STATES
from reseller_portal.services.notification_service import NotificationService
from reseller_portal.services.reseller_service import ResellerService
from reseller_portal.services.rule_service import RuleService
from reseller_portal.services.schedule import generate_schedule, quantize_money, validate_contract_terms
from reseller_portal.services.side_effects import (
    AuditRecorder,
    Notifier,
    emit_audit_fact,
    emit_notification,
)

logger = logging.getLogger(__name__)


@dataclass
class DealClosureResult:
    customer: Customer
    commissions: List[Commission]
    commissions_created: int
    total_commission_value: Decimal
    is_one_off_payment: bool = False

    @property
    def auto_approved(self) -> List[Commission]:
        return [c for c in self.commissions if c.auto_approved]


@dataclass
class ContractEndResult:
    customer: Customer
    commissions_ended: int


class DealService:
    def __init__(
        self,
        db: Session,
        auditor: Optional[AuditRecorder] = None,
        notifier: Optional[Notifier] = None
    ):
        self.db = db
        self.auditor = auditor or AuditService(db)
        self.notifier = notifier or NotificationService(db)
        self.rules = RuleService(db, auditor=self.auditor)
        self.resellers = ResellerService(db, auditor=self.auditor)

    def _lock_customer(self, customer_id: str) -> Customer:
        # populate_existing so the row is re-read inside this transaction
        customer = (
            self.db.query(Customer)
            .filter(Customer.id == customer_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not customer:
            raise NotFoundError("Customer not found", details={"customer_id": customer_id})
        return customer

    def close_deal(
        self,
        customer_id: str,
        contract_value,
        contract_duration: Optional[int] = None,
        closed_by_admin_id: Optional[str] = None
    ) -> DealClosureResult:
        """Mark the customer ACTIVE and create its commission schedule"""
        # Duration may still come from the reseller default, checked again in generate_schedule
        validate_contract_terms(contract_value, 1 if contract_duration is None else contract_duration)

        now = datetime.utcnow()
        try:
            customer = self._lock_customer(customer_id)
            # A schedule is generated once per customer, even after the contract ended
            if customer.status == CustomerStatus.ACTIVE or customer.closed_at is not None:
                raise DealAlreadyClosed(details={"customer_id": customer_id, "status": customer.status.value})

            reseller = self.resellers.lookup_reseller_snapshot(customer.reseller_id)
            rules = self.rules.lookup_rules()
            if contract_duration is None:
                contract_duration = reseller.commission_years

            drafts = generate_schedule(customer, contract_value, contract_duration, reseller, now=now)
            for draft in drafts:
                apply_decision(draft, evaluate(draft, reseller, rules), now=now)

            customer.status = CustomerStatus.ACTIVE
            customer.contract_value = drafts[0].contract_value
            customer.contract_duration = contract_duration
            customer.closed_at = now
            customer.closed_by_id = closed_by_admin_id

            commissions = [Commission(**draft.to_row_kwargs()) for draft in drafts]
            self.db.add_all(commissions)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        total = quantize_money(sum((c.amount for c in commissions), Decimal("0")))
        result = DealClosureResult(
            customer=customer,
            commissions=commissions,
            commissions_created=len(commissions),
            total_commission_value=total,
            is_one_off_payment=reseller.is_one_off_payment
        )
        logger.info(
            "Deal closed for customer %s: %d commission(s), total %s, %d auto-approved",
            customer.id, result.commissions_created, total, len(result.auto_approved)
        )

        self._emit_closure(result, closed_by_admin_id)
        return result

    def _emit_closure(self, result: DealClosureResult, closed_by_admin_id: Optional[str]):
        customer = result.customer
        emit_audit_fact(
            self.auditor,
            action="DEAL_CLOSED",
            performed_by=closed_by_admin_id,
            entity_type="Customer",
            entity_id=customer.id,
            changes={
                "status": CustomerStatus.ACTIVE.value,
                "contract_value": customer.contract_value,
                "contract_duration": customer.contract_duration,
                "commissions_created": result.commissions_created,
                "total_commission_value": result.total_commission_value,
            }
        )

        for commission in result.auto_approved:
            emit_audit_fact(
                self.auditor,
                action="COMMISSION_AUTO_APPROVED",
                performed_by=None,
                entity_type="Commission",
                entity_id=commission.id,
                changes={
                    "amount": commission.amount,
                    "period": commission.period,
                    "rule_id": commission.auto_approval_rule_id,
                }
            )
            emit_notification(
                self.notifier,
                user_id=commission.reseller_id,
                type=NotificationType.COMMISSION_APPROVED,
                payload=commission_payload(commission)
            )

    def end_contract(self, customer_id: str, ended_by_admin_id: Optional[str] = None) -> ContractEndResult:
        """End an active contract early; open commissions become CONTRACT_ENDED"""
        now = datetime.utcnow()
        try:
            customer = self._lock_customer(customer_id)
            if customer.status != CustomerStatus.ACTIVE:
                raise NotActiveContract(
                    "Can only end contract for active customers",
                    details={"customer_id": customer_id, "status": customer.status.value}
                )

            open_commissions = self.db.query(Commission.id, Commission.status).filter(
                Commission.customer_id == customer_id,
                Commission.status.in_(OPEN_STATES)
            ).order_by(Commission.year_number).all()

            commissions_ended = self.db.query(Commission).filter(
                Commission.customer_id == customer_id,
                Commission.status.in_(OPEN_STATES)
            ).update(
                {Commission.status: CommissionStatus.CONTRACT_ENDED, Commission.updated_at: now},
                synchronize_session="fetch"
            )

            customer.status = CustomerStatus.NO_DEAL
            customer.contract_ended_at = now
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Contract ended for customer %s, %d commission(s) ended", customer.id, commissions_ended)

        emit_audit_fact(
            self.auditor,
            action="CONTRACT_ENDED",
            performed_by=ended_by_admin_id,
            entity_type="Customer",
            entity_id=customer.id,
            changes={
                "from": CustomerStatus.ACTIVE.value,
                "to": CustomerStatus.NO_DEAL.value,
                "commissions_ended": commissions_ended,
            }
        )
        for commission_id, previous in open_commissions:
            emit_audit_fact(
                self.auditor,
                action=AUDIT_ACTIONS[CommissionStatus.CONTRACT_ENDED],
                performed_by=ended_by_admin_id,
                entity_type="Commission",
                entity_id=commission_id,
                changes={"from": previous.value, "to": CommissionStatus.CONTRACT_ENDED.value}
            )
        emit_notification(
            self.notifier,
            user_id=customer.reseller_id,
            type=NotificationType.CUSTOMER_STATUS_CHANGED,
            payload={
                "customer_id": customer.id,
                "customer_name": customer.company_name,
                "new_status": "Contract Ended",
                "commissions_ended": commissions_ended,
            }
        )

        return ContractEndResult(customer=customer, commissions_ended=commissions_ended)
