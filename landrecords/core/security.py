"""JWT authentication and permission-gate dependencies."""

import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional, Iterable, List

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from landrecords.core.config import settings
from landrecords.core.permissions import Principal, PermissionPair, as_pair
from landrecords.db.session import get_db
from landrecords.services.authz_service import load_principal

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)

NOT_AUTHENTICATED = "Not authenticated"
NOT_PERMITTED = "Not permitted"


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pwd_bytes, hashed_bytes)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHENTICATED,
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> int:
    """Extract user_id from the JWT Bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHENTICATED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_token(credentials.credentials)
    if payload.get("type") != "access" or payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHENTICATED,
        )
    return int(payload["sub"])


def get_current_principal(
    request: Request,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> Principal:
    """Load the actor's authorization snapshot once per request.

    The snapshot is cached on ``request.state`` so every gate evaluated in the
    same request sees the same permission set.
    """
    cached = getattr(request.state, "principal", None)
    if cached is not None and cached.user_id == user_id:
        return cached
    principal = load_principal(db, user_id)
    if not principal.is_authenticated or not principal.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHENTICATED,
        )
    request.state.principal = principal
    return principal


def _forbidden() -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=NOT_PERMITTED)


class RequirePermission:
    """Dependency that checks a single (module, action) pair."""

    def __init__(self, module: str, action: str):
        self.pair = PermissionPair(module, action)

    def __call__(self, principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_permission(*self.pair):
            raise _forbidden()
        return principal


class RequireAnyPermission:
    """Dependency that passes if at least one listed pair is held."""

    def __init__(self, pairs: Iterable):
        self.pairs: List[PermissionPair] = [as_pair(p) for p in pairs]

    def __call__(self, principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_any_permission(self.pairs):
            raise _forbidden()
        return principal


class RequireAllPermissions:
    """Dependency that passes only if every listed pair is held."""

    def __init__(self, pairs: Iterable):
        self.pairs: List[PermissionPair] = [as_pair(p) for p in pairs]

    def __call__(self, principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_all_permissions(self.pairs):
            raise _forbidden()
        return principal
