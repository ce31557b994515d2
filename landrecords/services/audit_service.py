"""Audit service: append-only audit trail for security and business events."""

import math
from datetime import datetime, time
from typing import Optional, Any, Dict

from sqlalchemy import or_
from sqlalchemy.orm import Session
from fastapi import Request

from landrecords.models.audit_log import AuditLog, AuditAction


class AuditService:
    """Records immutable audit log entries for system events."""

    @staticmethod
    def log(
        db: Session,
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[Any] = None,
        actor_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        commit: bool = True,
    ) -> AuditLog:
        """Write a single audit log record.

        Args:
            action: one of ``AuditAction``; plain strings are validated.
            entity_type: Property, Role, User, ApprovalWorkflow, ...
            commit: commit immediately so the entry is never lost. Pass
                ``False`` inside a larger transaction so the entry shares its
                fate.
        """
        entry = AuditLog(
            action=AuditAction(action),
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            user_id=actor_id,
            changes=changes,
            metadata_json=metadata,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        db.add(entry)
        if commit:
            db.commit()
        else:
            db.flush()
        return entry

    @staticmethod
    def log_from_request(
        db: Session,
        request: Request,
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[Any] = None,
        actor_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        commit: bool = True,
    ) -> AuditLog:
        """Write audit log extracting IP and user-agent from the request."""
        ip = request.client.host if request.client else None
        ua = request.headers.get("user-agent", "")
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            metadata = {**(metadata or {}), "request_id": request_id}
        return AuditService.log(
            db=db,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            changes=changes,
            metadata=metadata,
            ip_address=ip,
            user_agent=ua,
            commit=commit,
        )

    @staticmethod
    def query_logs(
        db: Session,
        search: Optional[str] = None,
        action: Optional[AuditAction] = None,
        entity_type: Optional[str] = None,
        actor_id: Optional[int] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """Query audit logs with filters and pagination, newest first."""
        query = db.query(AuditLog)

        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(AuditLog.entity_id.ilike(pattern), AuditLog.ip_address.ilike(pattern))
            )
        if action:
            query = query.filter(AuditLog.action == AuditAction(action))
        if entity_type:
            query = query.filter(AuditLog.entity_type == entity_type)
        if actor_id:
            query = query.filter(AuditLog.user_id == actor_id)
        if date_from:
            query = query.filter(AuditLog.created_at >= date_from)
        if date_to:
            # A bare date means "through the end of that day"
            if isinstance(date_to, datetime) and date_to.time() == time.min:
                date_to = datetime.combine(date_to.date(), time.max)
            query = query.filter(AuditLog.created_at <= date_to)

        total = query.count()
        logs = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        return {
            "logs": logs,
            "total": total,
            "total_pages": math.ceil(total / page_size) if page_size else 0,
            "page": page,
            "page_size": page_size,
        }

    @staticmethod
    def recent_activity(db: Session, actor_id: int, limit: int = 10):
        """Latest entries for one actor."""
        return (
            db.query(AuditLog)
            .filter(AuditLog.user_id == actor_id)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
            .all()
        )


audit_service = AuditService()
