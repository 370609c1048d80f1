from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import Optional

from reseller_portal.core.database import get_db
from reseller_portal.core.security import get_current_user, require_role
from reseller_portal.models.commission import CommissionStatus
from reseller_portal.models.user import User, UserRole
from reseller_portal.services.report_service import ReportService

router = APIRouter()


def csv_response(filename: str, content: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.get("/commissions")
async def export_commissions(
    status: Optional[CommissionStatus] = None,
    period: Optional[str] = None,
    reseller_id: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Export a commission statement as CSV"""
    return csv_response(*ReportService.export_commissions(
        db=db,
        user=current_user,
        status=status,
        period=period,
        reseller_id=reseller_id
    ))


@router.get("/customers")
async def export_customers(
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Export all customers as CSV (admin only)"""
    return csv_response(*ReportService.export_customers(db))


@router.get("/resellers")
async def export_resellers(
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Export resellers with commission totals as CSV (admin only)"""
    return csv_response(*ReportService.export_resellers(db))


@router.get("/audit-logs")
async def export_audit_logs(
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Export the latest audit facts as CSV (admin only)"""
    return csv_response(*ReportService.export_audit_logs(db))
