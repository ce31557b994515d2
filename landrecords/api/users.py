"""Users API router."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from landrecords.db.session import get_db
from landrecords.schemas.schemas import UserCreate, UserUpdateRequest, UserOut
from landrecords.services.user_service import user_service
from landrecords.services.audit_service import audit_service
from landrecords.models.audit_log import AuditAction
from landrecords.core.permissions import PERMISSIONS, Principal
from landrecords.core.security import RequirePermission

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/", response_model=List[UserOut])
async def list_users(
    search: Optional[str] = None,
    role_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.USER_READ)),
):
    return user_service.list_users(db, search=search, role_id=role_id, is_active=is_active)


@router.get("/stats")
async def user_stats(
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.USER_READ)),
):
    return user_service.get_user_stats(db)


@router.get("/with-permission", response_model=List[UserOut])
async def users_with_permission(
    module: str = Query(...),
    action: str = Query(...),
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.USER_READ)),
):
    """Active users able to perform (module, action), e.g. eligible approvers."""
    return user_service.list_users_with_permission(db, module, action)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.USER_READ)),
):
    return user_service.get_user(db, user_id)


@router.post("/", response_model=UserOut, status_code=201)
async def create_user(
    body: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.USER_CREATE)),
):
    user = user_service.create_user(
        db,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        role_id=body.role_id,
        department=body.department,
        position=body.position,
    )
    audit_service.log_from_request(
        db, request,
        action=AuditAction.CREATE,
        entity_type="User",
        entity_id=user.id,
        actor_id=principal.user_id,
        changes={"email": user.email, "role_id": user.role_id},
    )
    return user


@router.put("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: int,
    body: UserUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.USER_UPDATE)),
):
    changes = body.model_dump(exclude_unset=True)
    user = user_service.update_user(db, user_id, **changes)
    changes.pop("password", None)
    audit_service.log_from_request(
        db, request,
        action=AuditAction.UPDATE,
        entity_type="User",
        entity_id=user.id,
        actor_id=principal.user_id,
        changes=changes,
    )
    return user


@router.delete("/{user_id}", response_model=UserOut)
async def deactivate_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(*PERMISSIONS.USER_DELETE)),
):
    """Soft delete: the account is deactivated, never removed."""
    user = user_service.deactivate_user(db, user_id, principal.user_id)
    audit_service.log_from_request(
        db, request,
        action=AuditAction.DELETE,
        entity_type="User",
        entity_id=user_id,
        actor_id=principal.user_id,
    )
    return user
