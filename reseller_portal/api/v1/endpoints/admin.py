from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from reseller_portal.core.database import get_db
from reseller_portal.core.security import require_role
from reseller_portal.schemas.commission import BulkCommissionAction, BulkCommissionResult
from reseller_portal.schemas.customer import CloseDealRequest, CloseDealResponse, EndContractResponse
from reseller_portal.schemas.user import CommissionTermsUpdate, UserResponse
from reseller_portal.models.user import User, UserRole
from reseller_portal.services.commission_service import BULK_ACTIONS, CommissionService
from reseller_portal.services.commission_state import Actor
from reseller_portal.services.deal_service import DealService
from reseller_portal.services.reseller_service import ResellerService

router = APIRouter()


@router.post("/customers/{customer_id}/close-deal", response_model=CloseDealResponse)
async def close_deal(
    customer_id: str,
    body: CloseDealRequest,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Close a deal and generate its commission schedule (admin only)"""
    result = DealService(db).close_deal(
        customer_id,
        body.contract_value,
        body.contract_duration,
        closed_by_admin_id=current_user.id
    )
    return {
        "customer": result.customer,
        "commissions_created": result.commissions_created,
        "total_commission_value": result.total_commission_value,
        "is_one_off_payment": result.is_one_off_payment,
        "commissions": result.commissions,
    }


@router.post("/customers/{customer_id}/end-contract", response_model=EndContractResponse)
async def end_contract(
    customer_id: str,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """End an active contract early (admin only)"""
    result = DealService(db).end_contract(customer_id, ended_by_admin_id=current_user.id)
    return {"customer": result.customer, "commissions_ended": result.commissions_ended}


@router.post("/bulk-operations/commissions", response_model=BulkCommissionResult)
async def bulk_commission_operation(
    body: BulkCommissionAction,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Approve, reject or mark paid many commissions; failures are reported per item"""
    result = CommissionService(db).bulk_transition(
        body.commission_ids,
        BULK_ACTIONS[body.action],
        Actor.ADMIN,
        reason=body.rejection_reason,
        actor_id=current_user.id,
        payment_reference=body.payment_reference
    )
    return {
        "action": body.action,
        "succeeded": result.succeeded,
        "failed": result.failed,
        "results": [
            {
                "commission_id": item.commission_id,
                "ok": item.ok,
                "reason": getattr(item, "reason", None),
                "error_code": getattr(item, "error_code", None),
            }
            for item in result.results
        ],
    }


@router.patch("/users/{user_id}/toggle-trusted", response_model=UserResponse)
async def toggle_trusted(
    user_id: str,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Toggle the trusted flag of a reseller (admin only)"""
    return ResellerService(db).toggle_trusted(user_id, performed_by=current_user.id)


@router.patch("/users/{user_id}/commission-terms", response_model=UserResponse)
async def update_commission_terms(
    user_id: str,
    body: CommissionTermsUpdate,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Change a reseller's terms for future deals (admin only)"""
    return ResellerService(db).update_commission_terms(
        user_id,
        body.model_dump(exclude_unset=True),
        performed_by=current_user.id
    )
