import logging
import smtplib
from email.message import EmailMessage

from celery import Task
from sqlalchemy.orm import Session

from reseller_portal.tasks.celery_app import celery_app
from reseller_portal.core.config import settings
from reseller_portal.core.database import SessionLocal
from reseller_portal.models.notification import Notification

logger = logging.getLogger(__name__)


class DatabaseTask(Task):
    """Base task with database session"""
    _db = None

    @property
    def db(self) -> Session:
        if self._db is None:
            self._db = SessionLocal()
        return self._db

    def after_return(self, *args, **kwargs):
        if self._db is not None:
            self._db.close()
            self._db = None


def build_email(notification: Notification) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = notification.title
    message["From"] = settings.EMAIL_FROM
    message["To"] = notification.user.email
    message.set_content(
        f"{notification.message}\n\n"
        f"{settings.APP_URL}/reseller/notifications\n\n"
        "This is an automatically generated message from the Reseller Portal."
    )
    return message


@celery_app.task(base=DatabaseTask, bind=True)
def send_notification_email(self, notification_id: str):
    """Send the e-mail copy of a stored notification"""

    db = self.db

    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if not notification:
        logger.warning("Notification %s not found, e-mail skipped", notification_id)
        return {"status": "skipped", "reason": "not_found"}

    if not settings.SMTP_HOST:
        logger.info("SMTP not configured, e-mail for notification %s skipped", notification_id)
        return {"status": "skipped", "reason": "smtp_not_configured"}

    if not notification.user or not notification.user.email:
        return {"status": "skipped", "reason": "no_recipient"}

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as smtp:
            smtp.starttls()
            if settings.SMTP_USER:
                smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
            smtp.send_message(build_email(notification))
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send e-mail for notification %s: %s", notification_id, e)
        return {"status": "error", "message": str(e)}

    notification.email_sent = True
    db.commit()

    return {"status": "sent", "notification_id": notification_id}
