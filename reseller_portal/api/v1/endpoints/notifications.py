from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
from datetime import datetime

from reseller_portal.core.config import settings
from reseller_portal.core.database import get_db
from reseller_portal.core.security import get_current_user
from reseller_portal.models.notification import NotificationType
from reseller_portal.models.user import User
from reseller_portal.services.notification_service import NotificationService

router = APIRouter()


class NotificationResponse(BaseModel):
    id: str
    type: NotificationType
    title: str
    message: str
    payload: Optional[Dict[str, Any]] = None
    read: bool
    email_sent: bool
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("/", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List notifications of the current user"""
    return NotificationService(db).list_notifications(
        current_user.id, unread_only=unread_only, skip=skip, limit=limit
    )


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark a notification as read"""
    return NotificationService(db).mark_read(notification_id, current_user.id)
