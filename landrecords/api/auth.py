"""Auth API router."""

from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from landrecords.db.session import get_db
from landrecords.schemas.schemas import AuditLogOut, LoginRequest, TokenResponse, MeResponse
from landrecords.services.auth_service import auth_service
from landrecords.services.audit_service import audit_service
from landrecords.models.audit_log import AuditAction
from landrecords.models.user import User
from landrecords.core.permissions import Principal
from landrecords.core.security import get_current_principal

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Authenticate and receive a bearer token."""
    result = auth_service.authenticate(db, body.email, body.password)
    user = result["user"]
    audit_service.log_from_request(
        db, request,
        action=AuditAction.LOGIN,
        entity_type="User",
        entity_id=user.id,
        actor_id=user.id,
    )
    return TokenResponse(
        access_token=result["access_token"],
        token_type=result["token_type"],
        user={
            "id": user.id,
            "email": user.email,
            "full_name": user.full_name,
            "role": user.role.name if user.role else None,
        },
    )


@router.get("/me", response_model=MeResponse)
async def me(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Current actor with the permission map used for UI visibility."""
    user = db.get(User, principal.user_id)
    return MeResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=principal.role_name,
        privileged=principal.privileged,
        permissions=principal.permissions_by_module(),
    )


@router.get("/me/activity", response_model=List[AuditLogOut])
async def my_activity(
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Latest audit entries recorded for the current actor."""
    return audit_service.recent_activity(db, principal.user_id, limit=limit)
