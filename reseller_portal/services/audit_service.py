from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from fastapi.encoders import jsonable_encoder
from typing import Optional, Dict, Any, List

from reseller_portal.models.audit_log import AuditLog


class AuditService:
    def __init__(self, db: Session):
        self.db = db

    def record_fact(
        self,
        action: str,
        performed_by: Optional[str],
        entity_type: str,
        entity_id: Optional[str] = None,
        changes: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> AuditLog:
        """Log an audit action"""
        log = AuditLog(
            performed_by_id=performed_by,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            changes=jsonable_encoder(changes) if changes is not None else None,
            extra=jsonable_encoder(metadata) if metadata is not None else None,
            ip_address=ip_address,
            user_agent=user_agent
        )
        try:
            self.db.add(log)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return log

    def list_logs(
        self,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[AuditLog]:
        query = self.db.query(AuditLog)

        if action:
            query = query.filter(AuditLog.action == action)
        if entity_type:
            query = query.filter(AuditLog.entity_type == entity_type)
        if entity_id:
            query = query.filter(AuditLog.entity_id == entity_id)

        return query.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit).all()
