"""Approvals API router."""

from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from landrecords.db.session import get_db
from landrecords.schemas.schemas import ApprovalOut, ApprovalStats, RejectRequest, ExpireRequest
from landrecords.services.approval_service import approval_service
from landrecords.models.approval import ApprovalStatus, WorkflowType
from landrecords.core.permissions import PERMISSIONS, Principal
from landrecords.core.security import RequirePermission, RequireAnyPermission

router = APIRouter(prefix="/approvals", tags=["approvals"])

can_read = RequirePermission(*PERMISSIONS.APPROVAL_READ)


@router.get("/", response_model=List[ApprovalOut])
async def list_approvals(
    status: Optional[ApprovalStatus] = None,
    workflow_type: Optional[WorkflowType] = None,
    property_id: Optional[int] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(can_read),
):
    return approval_service.list_all(db, status, workflow_type, property_id)


@router.get("/pending", response_model=List[ApprovalOut])
async def pending_queue(
    workflow_type: Optional[WorkflowType] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequireAnyPermission([
        PERMISSIONS.APPROVAL_APPROVE, PERMISSIONS.APPROVAL_REJECT,
    ])),
):
    """Review queue ordered for deciders."""
    return approval_service.list_pending(db, workflow_type)


@router.get("/mine", response_model=List[ApprovalOut])
async def my_requests(
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.APPROVAL_CREATE)),
):
    return approval_service.list_by_initiator(db, principal.user_id)


@router.get("/stats", response_model=ApprovalStats)
async def approval_stats(
    db: Session = Depends(get_db),
    principal: Principal = Depends(can_read),
):
    return ApprovalStats(**approval_service.get_approval_stats(db))


@router.get("/counts")
async def status_counts(
    mine: bool = False,
    db: Session = Depends(get_db),
    principal: Principal = Depends(can_read),
):
    return approval_service.get_status_counts(db, principal.user_id if mine else None)


@router.post("/expire")
async def expire_stale(
    body: ExpireRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.SYSTEM_UPDATE)),
):
    expired = approval_service.expire_stale(db, max_age_hours=body.max_age_hours)
    return {"expired": expired, "count": len(expired)}


@router.get("/{workflow_id}", response_model=ApprovalOut)
async def get_approval(
    workflow_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(can_read),
):
    return approval_service.get_workflow(db, workflow_id)


@router.post("/{workflow_id}/approve", response_model=ApprovalOut)
async def approve(
    workflow_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.APPROVAL_APPROVE)),
):
    """Approve and apply the proposed changes atomically."""
    return approval_service.approve(db, workflow_id, principal.user_id)


@router.post("/{workflow_id}/reject", response_model=ApprovalOut)
async def reject(
    workflow_id: int,
    body: RejectRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.APPROVAL_REJECT)),
):
    return approval_service.reject(db, workflow_id, principal.user_id, body.reason)


@router.post("/{workflow_id}/cancel", response_model=ApprovalOut)
async def cancel(
    workflow_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.APPROVAL_CANCEL)),
):
    return approval_service.cancel(db, workflow_id, principal.user_id)
