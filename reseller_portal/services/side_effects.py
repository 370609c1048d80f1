"""
Fire-and-forget side effects of commission state changes.

Audit facts and notifications are emitted after the owning transaction has
committed. A failure here is logged and swallowed: the state change stands.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from reseller_portal.models.notification import NotificationType

logger = logging.getLogger(__name__)


class AuditRecorder(Protocol):
    def record_fact(
        self,
        action: str,
        performed_by: Optional[str],
        entity_type: str,
        entity_id: Optional[str] = None,
        changes: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any:
        ...


class Notifier(Protocol):
    def deliver_notification(
        self,
        user_id: str,
        type: NotificationType,
        payload: Dict[str, Any],
    ) -> Any:
        ...


def emit_audit_fact(
    recorder: AuditRecorder,
    action: str,
    performed_by: Optional[str],
    entity_type: str,
    entity_id: Optional[str] = None,
    changes: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> bool:
    try:
        recorder.record_fact(
            action=action,
            performed_by=performed_by,
            entity_type=entity_type,
            entity_id=entity_id,
            changes=changes,
            metadata=metadata,
        )
        return True
    except Exception:
        logger.exception("Failed to record audit fact %s for %s %s", action, entity_type, entity_id)
        return False


def emit_notification(
    notifier: Notifier,
    user_id: str,
    type: NotificationType,
    payload: Dict[str, Any],
) -> bool:
    try:
        notifier.deliver_notification(user_id=user_id, type=type, payload=payload)
        return True
    except Exception:
        logger.exception("Failed to deliver %s notification to user %s", type, user_id)
        return False
