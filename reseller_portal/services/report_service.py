from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from typing import Optional, Tuple
from datetime import datetime
import json

import pandas as pd

from reseller_portal.models.audit_log import AuditLog
from reseller_portal.models.commission import Commission, CommissionStatus
from reseller_portal.models.customer import Customer
from reseller_portal.models.user import User, UserRole

AUDIT_EXPORT_LIMIT = 1000

COMMISSION_COLUMNS = [
    "Request Date",
    "Reseller",
    "Company",
    "Customer",
    "Period",
    "Description",
    "Amount",
    "Currency",
    "Status",
    "Auto Approved",
    "Approved Date",
    "Approved By",
    "Paid Date",
    "Payment Reference",
    "Notes",
]


def _date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else ""


def _filename(prefix: str) -> str:
    return f"{prefix}-{datetime.utcnow():%Y-%m-%d}.csv"


def _to_csv(frame: pd.DataFrame) -> str:
    return frame.to_csv(index=False)


class ReportService:
    @staticmethod
    def export_commissions(
        db: Session,
        user: User,
        status: Optional[CommissionStatus] = None,
        period: Optional[str] = None,
        reseller_id: Optional[str] = None
    ) -> Tuple[str, str]:
        """Commission statement as CSV; resellers only get their own rows"""
        query = db.query(Commission).options(
            joinedload(Commission.reseller),
            joinedload(Commission.customer),
            joinedload(Commission.approved_by)
        )

        if user.role == UserRole.RESELLER:
            query = query.filter(Commission.reseller_id == user.id)
        elif reseller_id:
            query = query.filter(Commission.reseller_id == reseller_id)

        if status:
            query = query.filter(Commission.status == status)
        if period:
            query = query.filter(Commission.period == period)

        commissions = query.order_by(Commission.requested_at.desc(), Commission.year_number.asc()).all()

        rows = [
            {
                "Request Date": _date(c.requested_at),
                "Reseller": c.reseller.name,
                "Company": c.reseller.company or "",
                "Customer": c.customer.company_name if c.customer else "",
                "Period": c.period,
                "Description": c.description or "",
                "Amount": f"{c.amount:.2f}",
                "Currency": c.currency,
                "Status": c.status.value,
                "Auto Approved": "Yes" if c.auto_approved else "No",
                "Approved Date": _date(c.approved_at),
                "Approved By": c.approved_by.name if c.approved_by else "",
                "Paid Date": _date(c.paid_at),
                "Payment Reference": c.payment_reference or "",
                "Notes": c.notes or "",
            }
            for c in commissions
        ]
        return _filename("commission-statement"), _to_csv(pd.DataFrame(rows, columns=COMMISSION_COLUMNS))

    @staticmethod
    def export_customers(db: Session) -> Tuple[str, str]:
        customers = db.query(Customer).options(joinedload(Customer.reseller)).order_by(
            Customer.created_at.asc()
        ).all()

        frame = pd.DataFrame(
            [
                {
                    "Company Name": c.company_name,
                    "Contact Name": c.contact_name or "",
                    "Email": c.email or "",
                    "Phone": c.phone or "",
                    "Status": c.status.value,
                    "Reseller": c.reseller.name if c.reseller else "",
                    "Contract Value": f"{c.contract_value:.2f}" if c.contract_value is not None else "",
                    "Contract Duration": c.contract_duration or "",
                    "Closed Date": _date(c.closed_at),
                    "Registration Date": _date(c.created_at),
                }
                for c in customers
            ],
            columns=[
                "Company Name", "Contact Name", "Email", "Phone", "Status", "Reseller",
                "Contract Value", "Contract Duration", "Closed Date", "Registration Date",
            ]
        )
        return _filename("customers"), _to_csv(frame)

    @staticmethod
    def export_resellers(db: Session) -> Tuple[str, str]:
        """One row per reseller with customer count and commission totals per status"""
        resellers = db.query(User).filter(User.role == UserRole.RESELLER).order_by(User.name.asc()).all()

        customer_counts = dict(
            db.query(Customer.reseller_id, func.count(Customer.id)).group_by(Customer.reseller_id).all()
        )
        totals = pd.DataFrame(
            [tuple(row) for row in db.query(Commission.reseller_id, Commission.status, Commission.amount)],
            columns=["reseller_id", "status", "amount"]
        )
        if not totals.empty:
            totals["status"] = totals["status"].map(lambda s: s.value)
            totals["amount"] = totals["amount"].astype(float)
            by_status = totals.pivot_table(
                index="reseller_id", columns="status", values="amount", aggfunc="sum", fill_value=0.0
            )
        else:
            by_status = pd.DataFrame()

        def total(reseller_id: str, status: CommissionStatus) -> str:
            if reseller_id in by_status.index and status.value in by_status.columns:
                return f"{by_status.loc[reseller_id, status.value]:.2f}"
            return "0.00"

        frame = pd.DataFrame(
            [
                {
                    "Reseller Name": r.name,
                    "Email": r.email,
                    "Company": r.company or "",
                    "Commission Rate": f"{r.commission_rate:.2f}",
                    "Commission Years": r.commission_years,
                    "One-off Payment": "Yes" if r.is_one_off_payment else "No",
                    "Trusted": "Yes" if r.is_trusted else "No",
                    "Customers": customer_counts.get(r.id, 0),
                    "Pending": total(r.id, CommissionStatus.PENDING),
                    "Approved": total(r.id, CommissionStatus.APPROVED),
                    "Paid": total(r.id, CommissionStatus.PAID),
                }
                for r in resellers
            ],
            columns=[
                "Reseller Name", "Email", "Company", "Commission Rate", "Commission Years",
                "One-off Payment", "Trusted", "Customers", "Pending", "Approved", "Paid",
            ]
        )
        return _filename("resellers"), _to_csv(frame)

    @staticmethod
    def export_audit_logs(db: Session, limit: int = AUDIT_EXPORT_LIMIT) -> Tuple[str, str]:
        logs = db.query(AuditLog).options(joinedload(AuditLog.performed_by)).order_by(
            AuditLog.created_at.desc()
        ).limit(limit).all()

        frame = pd.DataFrame(
            [
                {
                    "Timestamp": log.created_at.isoformat() if log.created_at else "",
                    "Action": log.action,
                    "Entity Type": log.entity_type,
                    "Entity ID": log.entity_id or "",
                    # System facts (rule approvals) have no performer
                    "Performed By": log.performed_by.name if log.performed_by else "System",
                    "Email": log.performed_by.email if log.performed_by else "",
                    "IP Address": log.ip_address or "",
                    "Changes": json.dumps(log.changes) if log.changes else "",
                }
                for log in logs
            ],
            columns=[
                "Timestamp", "Action", "Entity Type", "Entity ID", "Performed By",
                "Email", "IP Address", "Changes",
            ]
        )
        return _filename("audit-logs"), _to_csv(frame)
