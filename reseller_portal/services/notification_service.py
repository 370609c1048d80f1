import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from fastapi.encoders import jsonable_encoder
from typing import Any, Dict, List, Optional

from reseller_portal.core.config import settings
from reseller_portal.core.exceptions import NotFoundError
from reseller_portal.models.notification import Notification, NotificationType
from reseller_portal.models.user import User

logger = logging.getLogger(__name__)


class _Blank(dict):
    def __missing__(self, key):
        return "-"


TEMPLATES = {
    NotificationType.CUSTOMER_CREATED: (
        "New Customer Registered",
        'A new customer "{customer_name}" has been registered successfully.',
    ),
    NotificationType.CUSTOMER_STATUS_CHANGED: (
        "Customer Status Updated",
        'The status of customer "{customer_name}" has been changed to {new_status}.',
    ),
    NotificationType.COMMISSION_APPROVED: (
        "Commission Approved",
        "Your commission of {amount} {currency} for period {period} has been approved.",
    ),
    NotificationType.COMMISSION_REJECTED: (
        "Commission Rejected",
        "Your commission of {amount} {currency} for period {period} has been rejected. Reason: {rejection_reason}.",
    ),
    NotificationType.COMMISSION_PAID: (
        "Commission Paid",
        "Your commission of {amount} {currency} for period {period} has been paid.",
    ),
}


def render_notification(type: NotificationType, payload: Dict[str, Any]):
    """Return (title, message) for a notification"""
    title, message = TEMPLATES[NotificationType(type)]
    message = message.format_map(_Blank(payload))
    if type == NotificationType.COMMISSION_PAID and payload.get("payment_reference"):
        message = f"{message[:-1]} (Ref: {payload['payment_reference']})."
    return title, message


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def deliver_notification(
        self,
        user_id: str,
        type: NotificationType,
        payload: Dict[str, Any]
    ) -> Optional[Notification]:
        """Store an in-app notification and queue its e-mail"""
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            logger.warning("Notification %s skipped, user %s not found", type, user_id)
            return None

        payload = jsonable_encoder(payload)
        title, message = render_notification(type, payload)

        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            payload=payload
        )
        try:
            self.db.add(notification)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        if settings.EMAIL_NOTIFICATIONS_ENABLED:
            from reseller_portal.tasks.notification_tasks import send_notification_email
            send_notification_email.delay(notification.id)

        return notification

    def list_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 20
    ) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.read == False)  # noqa: E712
        return query.order_by(Notification.created_at.desc()).offset(skip).limit(limit).all()

    def mark_read(self, notification_id: str, user_id: str) -> Notification:
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()
        if not notification:
            raise NotFoundError("Notification not found")

        notification.read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification
