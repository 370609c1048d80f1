from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from reseller_portal.core.config import settings
from reseller_portal.core.database import get_db
from reseller_portal.core.exceptions import AuthorizationError
from reseller_portal.core.security import get_current_user, require_role
from reseller_portal.schemas.customer import CustomerCreate, CustomerResponse, CustomerStatusUpdate
from reseller_portal.models.customer import CustomerStatus
from reseller_portal.models.user import User, UserRole
from reseller_portal.services.customer_service import CustomerService

router = APIRouter()


def _check_owner(customer, current_user: User):
    if current_user.role == UserRole.RESELLER and customer.reseller_id != current_user.id:
        raise AuthorizationError()


@router.post("/", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    body: CustomerCreate,
    current_user: User = Depends(require_role(UserRole.RESELLER)),
    db: Session = Depends(get_db)
):
    """Register a new customer"""
    return CustomerService(db).create_customer(current_user.id, body.model_dump())


@router.get("/", response_model=List[CustomerResponse])
async def list_customers(
    status: Optional[CustomerStatus] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List customers"""
    reseller_id = current_user.id if current_user.role == UserRole.RESELLER else None
    return CustomerService(db).list_customers(reseller_id=reseller_id, status=status, skip=skip, limit=limit)


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a single customer"""
    customer = CustomerService(db).get_customer(customer_id)
    _check_owner(customer, current_user)
    return customer


@router.patch("/{customer_id}/status", response_model=CustomerResponse)
async def update_customer_status(
    customer_id: str,
    body: CustomerStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change the pre-deal status of a customer"""
    service = CustomerService(db)
    _check_owner(service.get_customer(customer_id), current_user)
    return service.change_status(customer_id, body.status, performed_by=current_user.id)
