from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import List

from reseller_portal.core.database import get_db
from reseller_portal.core.security import require_role
from reseller_portal.schemas.auto_approval_rule import (
    AutoApprovalRuleCreate,
    AutoApprovalRuleResponse,
    AutoApprovalRuleUpdate,
)
from reseller_portal.models.user import User, UserRole
from reseller_portal.services.rule_service import RuleService

router = APIRouter()


@router.get("/", response_model=List[AutoApprovalRuleResponse])
async def list_rules(
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """List auto-approval rules in evaluation order"""
    return RuleService(db).list_rules()


@router.post("/", response_model=AutoApprovalRuleResponse, status_code=status.HTTP_201_CREATED)
async def create_rule(
    body: AutoApprovalRuleCreate,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Create an auto-approval rule"""
    return RuleService(db).create_rule(body.model_dump(), performed_by=current_user.id)


@router.patch("/{rule_id}", response_model=AutoApprovalRuleResponse)
async def update_rule(
    rule_id: str,
    body: AutoApprovalRuleUpdate,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Update an auto-approval rule"""
    return RuleService(db).update_rule(rule_id, body.model_dump(exclude_unset=True), performed_by=current_user.id)


@router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rule(
    rule_id: str,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Delete an auto-approval rule"""
    RuleService(db).delete_rule(rule_id, performed_by=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
