"""
Auto-approval of freshly generated commissions.

Rules are admin-configured predicates. Enabled rules are tried from the
highest priority down, ties going to the earliest created rule, and the
first one whose conditions all hold approves the commission.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from reseller_portal.models.commission import CommissionStatus
from reseller_portal.services.commission_state import Actor, apply_transition


@dataclass(frozen=True)
class AutoApprovalDecision:
    approve: bool
    matched_rule_id: Optional[str] = None
    matched_rule_name: Optional[str] = None


NO_MATCH = AutoApprovalDecision(approve=False)


def order_rules(rules: Iterable) -> List:
    """Enabled rules in evaluation order."""
    enabled = [rule for rule in rules if rule.enabled]
    # sorted() is stable, so rules with equal priority and timestamp keep input order
    return sorted(
        enabled,
        key=lambda rule: (-(rule.priority or 0), rule.created_at or datetime.min),
    )


def rule_matches(rule, amount: Decimal, reseller) -> bool:
    if rule.max_amount is not None and amount > Decimal(str(rule.max_amount)):
        return False
    if rule.trusted_resellers_only and not reseller.is_trusted:
        return False
    return True


def evaluate(draft, reseller, rules: Iterable) -> AutoApprovalDecision:
    """Decide whether a commission draft is approved by a rule."""
    for rule in order_rules(rules):
        if rule_matches(rule, draft.amount, reseller):
            return AutoApprovalDecision(
                approve=True,
                matched_rule_id=rule.id,
                matched_rule_name=rule.name,
            )
    return NO_MATCH


def apply_decision(draft, decision: AutoApprovalDecision, now: Optional[datetime] = None):
    """Move an approved draft to APPROVED as a system approval."""
    if not decision.approve:
        return draft

    apply_transition(draft, CommissionStatus.APPROVED, Actor.AUTO_RULE, now=now)
    draft.auto_approval_rule_id = decision.matched_rule_id
    return draft
