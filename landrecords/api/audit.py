"""Audit API router: audit log and change history browsing."""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from landrecords.db.session import get_db
from landrecords.schemas.schemas import AuditLogPage, ChangeHistoryPage
from landrecords.services.audit_service import audit_service
from landrecords.services.change_history_service import change_history_service
from landrecords.models.audit_log import AuditAction
from landrecords.models.change_history import ChangeType
from landrecords.core.permissions import PERMISSIONS, Principal
from landrecords.core.security import RequirePermission

router = APIRouter(prefix="/audit", tags=["audit"])

can_read = RequirePermission(*PERMISSIONS.AUDIT_READ)


@router.get("/logs", response_model=AuditLogPage)
async def list_audit_logs(
    search: Optional[str] = None,
    action: Optional[AuditAction] = None,
    entity_type: Optional[str] = None,
    actor_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(can_read),
):
    """Audit trail, newest first."""
    return audit_service.query_logs(
        db,
        search=search,
        action=action,
        entity_type=entity_type,
        actor_id=actor_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )


@router.get("/changes", response_model=ChangeHistoryPage)
async def list_changes(
    search: Optional[str] = None,
    change_type: Optional[ChangeType] = None,
    field_name: Optional[str] = None,
    actor_id: Optional[int] = None,
    property_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(can_read),
):
    return change_history_service.query(
        db,
        search=search,
        change_type=change_type,
        field_name=field_name,
        actor_id=actor_id,
        property_id=property_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )


@router.get("/changes/stats")
async def change_stats(
    db: Session = Depends(get_db),
    principal: Principal = Depends(can_read),
):
    return change_history_service.get_stats(db)
