import logging
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional

from reseller_portal.core.exceptions import ConflictError, NotFoundError, ValidationError
from reseller_portal.models.customer import Customer, CustomerStatus
from reseller_portal.models.notification import NotificationType
from reseller_portal.services.audit_service import AuditService
from reseller_portal.services.notification_service import NotificationService
from reseller_portal.services.reseller_service import ResellerService
from reseller_portal.services.side_effects import (
    AuditRecorder,
    Notifier,
    emit_audit_fact,
    emit_notification,
)

logger = logging.getLogger(__name__)

# ACTIVE is entered only by closing a deal and left only by ending the contract
MANUAL_STATUSES = (
    CustomerStatus.LEAD,
    CustomerStatus.PROSPECT,
    CustomerStatus.NO_DEAL,
    CustomerStatus.CANCELLED,
)


class CustomerService:
    def __init__(
        self,
        db: Session,
        auditor: Optional[AuditRecorder] = None,
        notifier: Optional[Notifier] = None
    ):
        self.db = db
        self.auditor = auditor or AuditService(db)
        self.notifier = notifier or NotificationService(db)

    def get_customer(self, customer_id: str) -> Customer:
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise NotFoundError("Customer not found", details={"customer_id": customer_id})
        return customer

    def list_customers(
        self,
        reseller_id: Optional[str] = None,
        status: Optional[CustomerStatus] = None,
        skip: int = 0,
        limit: int = 20
    ) -> List[Customer]:
        """List customers"""
        query = self.db.query(Customer)

        if reseller_id:
            query = query.filter(Customer.reseller_id == reseller_id)
        if status:
            query = query.filter(Customer.status == status)

        return query.order_by(Customer.created_at.desc()).offset(skip).limit(limit).all()

    def create_customer(self, reseller_id: str, values: Dict[str, Any]) -> Customer:
        """Register a new customer for a reseller"""
        ResellerService(self.db, auditor=self.auditor).get_reseller(reseller_id)

        company_name = (values.get("company_name") or "").strip()
        if not company_name:
            raise ValidationError("Company name is required", details={"field": "company_name"})

        status = CustomerStatus(values.get("status") or CustomerStatus.LEAD)
        if status not in (CustomerStatus.LEAD, CustomerStatus.PROSPECT):
            raise ValidationError("New customers start as LEAD or PROSPECT", details={"field": "status"})

        customer = Customer(
            reseller_id=reseller_id,
            company_name=company_name,
            contact_name=values.get("contact_name"),
            email=values.get("email"),
            phone=values.get("phone"),
            status=status
        )
        self.db.add(customer)
        self.db.commit()
        self.db.refresh(customer)

        emit_audit_fact(
            self.auditor,
            action="CUSTOMER_CREATED",
            performed_by=reseller_id,
            entity_type="Customer",
            entity_id=customer.id,
            changes={"company_name": customer.company_name, "status": customer.status.value}
        )
        emit_notification(
            self.notifier,
            user_id=reseller_id,
            type=NotificationType.CUSTOMER_CREATED,
            payload={"customer_id": customer.id, "customer_name": customer.company_name}
        )
        return customer

    def change_status(self, customer_id: str, new_status: CustomerStatus, performed_by: str) -> Customer:
        """Move a customer between the pre-deal statuses"""
        new_status = CustomerStatus(new_status)
        customer = self.get_customer(customer_id)

        if new_status not in MANUAL_STATUSES:
            raise ConflictError("Customers become ACTIVE only by closing a deal")
        if customer.status == CustomerStatus.ACTIVE:
            raise ConflictError("Active contracts are ended through end-contract")
        if new_status == customer.status:
            return customer

        previous = customer.status
        customer.status = new_status
        self.db.commit()
        self.db.refresh(customer)
        logger.info("Customer %s moved %s -> %s", customer.id, previous.value, new_status.value)

        emit_audit_fact(
            self.auditor,
            action="CUSTOMER_STATUS_UPDATED",
            performed_by=performed_by,
            entity_type="Customer",
            entity_id=customer.id,
            changes={"from": previous.value, "to": new_status.value}
        )
        emit_notification(
            self.notifier,
            user_id=customer.reseller_id,
            type=NotificationType.CUSTOMER_STATUS_CHANGED,
            payload={
                "customer_id": customer.id,
                "customer_name": customer.company_name,
                "new_status": new_status.value,
            }
        )
        return customer
