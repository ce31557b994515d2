"""Properties API router.

Direct edits are not exposed. Updates, deletions and restorations open an
approval request that an approver decides later.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from landrecords.db.session import get_db
from landrecords.schemas.schemas import (
    PropertyCreate, PropertyOut, PropertyListResponse, PropertyUpdateRequest,
    LifecycleRequest, ApprovalOut, ChangeHistoryOut,
)
from landrecords.services.property_service import property_service
from landrecords.services.change_history_service import change_history_service
from landrecords.core.permissions import PERMISSIONS, Principal
from landrecords.core.security import RequirePermission, RequireAllPermissions

router = APIRouter(prefix="/properties", tags=["properties"])


@router.get("/", response_model=PropertyListResponse)
async def list_properties(
    search: Optional[str] = None,
    include_deleted: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.PROPERTY_READ)),
):
    return property_service.list_properties(db, search, include_deleted, page, page_size)


@router.post("/", response_model=PropertyOut, status_code=201)
async def create_property(
    body: PropertyCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.PROPERTY_CREATE)),
):
    return property_service.create_property(db, body.model_dump(), principal.user_id)


@router.get("/{property_id}", response_model=PropertyOut)
async def get_property(
    property_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.PROPERTY_READ)),
):
    return property_service.get_property(db, property_id)


@router.post(
    "/{property_id}/update-requests", response_model=ApprovalOut, status_code=201,
)
async def request_update(
    property_id: int,
    body: PropertyUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequireAllPermissions([
        PERMISSIONS.PROPERTY_UPDATE, PERMISSIONS.APPROVAL_CREATE,
    ])),
):
    """Submit field changes for review."""
    return property_service.request_property_update(
        db, property_id, body.updates, principal.user_id,
        priority=body.priority, workflow_type=body.workflow_type,
    )


@router.post(
    "/{property_id}/deletion-requests", response_model=ApprovalOut, status_code=201,
)
async def request_deletion(
    property_id: int,
    body: LifecycleRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequireAllPermissions([
        PERMISSIONS.PROPERTY_DELETE, PERMISSIONS.APPROVAL_CREATE,
    ])),
):
    return property_service.request_deletion(
        db, property_id, principal.user_id, body.reason, body.priority,
    )


@router.post(
    "/{property_id}/restoration-requests", response_model=ApprovalOut, status_code=201,
)
async def request_restoration(
    property_id: int,
    body: LifecycleRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequireAllPermissions([
        PERMISSIONS.PROPERTY_DELETE, PERMISSIONS.APPROVAL_CREATE,
    ])),
):
    return property_service.request_restoration(
        db, property_id, principal.user_id, body.reason, body.priority,
    )


@router.get("/{property_id}/history", response_model=List[ChangeHistoryOut])
async def property_history(
    property_id: int,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.PROPERTY_READ)),
):
    property_service.get_property(db, property_id)
    return change_history_service.list_for_entity(db, property_id, limit)
