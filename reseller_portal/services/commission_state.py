"""
Commission state machine.

    PENDING  -> APPROVED        admin or auto-approval rule
    PENDING  -> REJECTED        admin, reason required
    APPROVED -> PAID            admin
    PENDING  -> CONTRACT_ENDED  contract termination only
    APPROVED -> CONTRACT_ENDED  contract termination only

REJECTED, PAID and CONTRACT_ENDED are terminal.
"""

import enum
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Tuple

from reseller_portal.core.exceptions import InvalidStateTransition, ValidationError
from reseller_portal.models.commission import CommissionStatus


class Actor(str, enum.Enum):
    ADMIN = "admin"
    RESELLER = "reseller"
    AUTO_RULE = "auto_rule"
    CONTRACT_TERMINATION = "contract_termination"


TRANSITIONS: Dict[Tuple[CommissionStatus, CommissionStatus], FrozenSet[Actor]] = {
    (CommissionStatus.PENDING, CommissionStatus.APPROVED): frozenset({Actor.ADMIN, Actor.AUTO_RULE}),
    (CommissionStatus.PENDING, CommissionStatus.REJECTED): frozenset({Actor.ADMIN}),
    (CommissionStatus.APPROVED, CommissionStatus.PAID): frozenset({Actor.ADMIN}),
    (CommissionStatus.PENDING, CommissionStatus.CONTRACT_ENDED): frozenset({Actor.CONTRACT_TERMINATION}),
    (CommissionStatus.APPROVED, CommissionStatus.CONTRACT_ENDED): frozenset({Actor.CONTRACT_TERMINATION}),
}

TERMINAL_STATES = frozenset({
    CommissionStatus.REJECTED,
    CommissionStatus.PAID,
    CommissionStatus.CONTRACT_ENDED,
})

# Commissions that a contract termination sweeps into CONTRACT_ENDED
OPEN_STATES = (CommissionStatus.PENDING, CommissionStatus.APPROVED)

# Target states the owning reseller is told about
RESELLER_VISIBLE_STATES = frozenset({
    CommissionStatus.APPROVED,
    CommissionStatus.REJECTED,
    CommissionStatus.PAID,
})


def is_allowed(current: CommissionStatus, target: CommissionStatus, actor: Actor) -> bool:
    return actor in TRANSITIONS.get((current, target), frozenset())


def check_transition(
    current: CommissionStatus,
    target: CommissionStatus,
    actor: Actor,
    reason: Optional[str] = None,
):
    """Raise unless `actor` may move a commission from `current` to `target`."""
    current = CommissionStatus(current)
    target = CommissionStatus(target)
    actor = Actor(actor)

    allowed_actors = TRANSITIONS.get((current, target))
    if allowed_actors is None:
        raise InvalidStateTransition(
            f"Cannot move commission from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )
    if actor not in allowed_actors:
        raise InvalidStateTransition(
            f"{actor.value} cannot move commission from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value, "actor": actor.value},
        )
    if target == CommissionStatus.REJECTED and not (reason and reason.strip()):
        raise ValidationError("Rejection reason is required", details={"field": "rejection_reason"})


def apply_transition(
    commission,
    target: CommissionStatus,
    actor: Actor,
    actor_id: Optional[str] = None,
    reason: Optional[str] = None,
    payment_reference: Optional[str] = None,
    now: Optional[datetime] = None,
):
    """Validate and apply a transition in place, setting its side-effect columns."""
    target = CommissionStatus(target)
    actor = Actor(actor)
    check_transition(commission.status, target, actor, reason)
    now = now or datetime.utcnow()

    if target == CommissionStatus.APPROVED:
        commission.approved_at = now
        if actor == Actor.AUTO_RULE:
            commission.approved_by_id = None
            commission.auto_approved = True
        else:
            commission.approved_by_id = actor_id
    elif target == CommissionStatus.REJECTED:
        commission.rejected_at = now
        commission.rejection_reason = reason.strip()
    elif target == CommissionStatus.PAID:
        commission.paid_at = now
        commission.payment_reference = payment_reference or None

    commission.status = target
    return commission
