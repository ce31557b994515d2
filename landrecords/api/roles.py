"""Roles API router."""

from typing import List
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from landrecords.db.session import get_db
from landrecords.schemas.schemas import (
    RoleCreate, RoleUpdate, RoleOut, RoleStats, PermissionOut, MessageResponse,
)
from landrecords.services.role_service import role_service
from landrecords.services.audit_service import audit_service
from landrecords.models.audit_log import AuditAction
from landrecords.core.permissions import PERMISSIONS, Principal
from landrecords.core.security import RequirePermission

router = APIRouter(prefix="/roles", tags=["roles"])


def _role_out(db: Session, role) -> RoleOut:
    out = RoleOut.model_validate(role)
    out.user_count = role_service.count_users(db, role.id)
    return out


@router.get("/", response_model=List[RoleOut])
async def list_roles(
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.ROLE_READ)),
):
    """List roles, system roles first."""
    return [_role_out(db, r) for r in role_service.list_roles(db)]


@router.get("/permissions", response_model=List[PermissionOut])
async def list_permissions(
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.ROLE_READ)),
):
    """Full permission catalog."""
    return role_service.list_permissions(db)


@router.get("/stats", response_model=RoleStats)
async def role_stats(
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.ROLE_READ)),
):
    return RoleStats(**role_service.get_role_stats(db))


@router.get("/{role_id}", response_model=RoleOut)
async def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.ROLE_READ)),
):
    return _role_out(db, role_service.get_role(db, role_id))


@router.post("/", response_model=RoleOut, status_code=201)
async def create_role(
    body: RoleCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.ROLE_CREATE)),
):
    """Create a role with its permission set."""
    role = role_service.create_role(db, body.name, body.permission_ids, body.description)
    audit_service.log_from_request(
        db, request,
        action=AuditAction.CREATE,
        entity_type="Role",
        entity_id=role.id,
        actor_id=principal.user_id,
        changes={"name": role.name, "permission_ids": sorted(body.permission_ids)},
    )
    return _role_out(db, role)


@router.put("/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: int,
    body: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.ROLE_UPDATE)),
):
    """Replace a role's fields and permission set."""
    role = role_service.update_role(
        db, role_id, body.name, body.is_active, body.permission_ids, body.description,
    )
    audit_service.log_from_request(
        db, request,
        action=AuditAction.UPDATE,
        entity_type="Role",
        entity_id=role.id,
        actor_id=principal.user_id,
        changes={
            "name": role.name,
            "is_active": role.is_active,
            "permission_ids": sorted(body.permission_ids),
        },
    )
    return _role_out(db, role)


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.ROLE_DELETE)),
):
    role_service.delete_role(db, role_id)
    audit_service.log_from_request(
        db, request,
        action=AuditAction.DELETE,
        entity_type="Role",
        entity_id=role_id,
        actor_id=principal.user_id,
    )
    return MessageResponse(message="Role deleted")
