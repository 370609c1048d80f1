from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from reseller_portal.core.config import settings
from reseller_portal.core.database import get_db
from reseller_portal.core.exceptions import AuthorizationError
from reseller_portal.core.security import get_current_user, require_role
from reseller_portal.schemas.commission import (
    CommissionAction,
    CommissionResponse,
    CommissionSummary,
)
from reseller_portal.models.user import User, UserRole
from reseller_portal.models.commission import CommissionStatus
from reseller_portal.services.commission_service import CommissionService
from reseller_portal.services.commission_state import Actor

router = APIRouter()

ACTION_TARGETS = {
    "APPROVE": CommissionStatus.APPROVED,
    "REJECT": CommissionStatus.REJECTED,
    "MARK_PAID": CommissionStatus.PAID,
}


@router.get("/", response_model=List[CommissionResponse])
async def list_commissions(
    status: Optional[CommissionStatus] = None,
    customer_id: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List commissions"""
    # Resellers only see their own commissions
    reseller_id = current_user.id if current_user.role == UserRole.RESELLER else None

    return CommissionService(db).list_commissions(
        reseller_id=reseller_id,
        customer_id=customer_id,
        status=status,
        skip=skip,
        limit=limit
    )


@router.get("/summary", response_model=CommissionSummary)
async def get_commission_summary(
    current_user: User = Depends(require_role(UserRole.RESELLER)),
    db: Session = Depends(get_db)
):
    """Commission totals for the current reseller"""
    return CommissionService(db).get_commission_summary(current_user.id)


@router.get("/{commission_id}", response_model=CommissionResponse)
async def get_commission(
    commission_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a single commission"""
    commission = CommissionService(db).get_commission(commission_id)

    if current_user.role == UserRole.RESELLER and commission.reseller_id != current_user.id:
        raise AuthorizationError()

    return commission


@router.patch("/{commission_id}", response_model=CommissionResponse)
async def update_commission_status(
    commission_id: str,
    body: CommissionAction,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Approve, reject or mark a commission as paid (admin only)"""
    return CommissionService(db).transition_commission(
        commission_id,
        ACTION_TARGETS[body.action],
        Actor.ADMIN,
        reason=body.rejection_reason,
        actor_id=current_user.id,
        payment_reference=body.payment_reference,
        notes=body.notes
    )
