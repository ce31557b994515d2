"""User service: actor management."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from landrecords.core.exceptions import (
    ConflictError, ForbiddenError, InvalidArgumentError, NotFoundError, TransactionFailureError,
)
from landrecords.core.permissions import is_privileged
from landrecords.core.security import hash_password
from landrecords.models.permission import Permission, RolePermission
from landrecords.models.role import Role
from landrecords.models.user import User

logger = logging.getLogger("landrecords.users")

# Attributes update_user may touch
_UPDATABLE = ("email", "first_name", "last_name", "department", "position", "is_active", "role_id")


def _assignable_role(db: Session, role_id: int) -> Role:
    role = db.get(Role, role_id)
    if role is None:
        raise NotFoundError(f"Role {role_id} not found")
    if not role.is_active:
        raise InvalidArgumentError(f"Role '{role.name}' is inactive and cannot be assigned")
    return role


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("A user with this email already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to %s", what)
        raise TransactionFailureError()


class UserService:
    """Creates, edits and deactivates actors."""

    @staticmethod
    def create_user(
        db: Session,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role_id: int,
        department: Optional[str] = None,
        position: Optional[str] = None,
    ) -> User:
        """Create a new user with exactly one role."""
        email = (email or "").strip().lower()
        if not email or not password:
            raise InvalidArgumentError("Email and password are required")
        if db.query(User).filter(User.email == email).first():
            raise ConflictError(f"User with email {email} already exists")
        _assignable_role(db, role_id)

        user = User(
            email=email,
            hashed_password=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            department=department,
            position=position,
            role_id=role_id,
            is_active=True,
        )
        db.add(user)
        _commit(db, f"create user {email}")
        db.refresh(user)
        logger.info("Created user %s with role %s", user.email, role_id)
        return user

    @staticmethod
    def update_user(db: Session, user_id: int, **changes: Any) -> User:
        """Patch profile fields and/or reassign the role."""
        user = UserService.get_user(db, user_id)
        unknown = sorted(set(changes) - set(_UPDATABLE) - {"password"})
        if unknown:
            raise InvalidArgumentError(f"Unknown fields: {', '.join(unknown)}")

        if changes.get("email") is not None:
            email = changes["email"].strip().lower()
            clash = db.query(User).filter(User.email == email, User.id != user_id).first()
            if clash:
                raise ConflictError(f"User with email {email} already exists")
            changes["email"] = email
        if changes.get("role_id") is not None and changes["role_id"] != user.role_id:
            _assignable_role(db, changes["role_id"])

        password = changes.pop("password", None)
        if password:
            user.hashed_password = hash_password(password)
        for field, value in changes.items():
            if value is not None:
                setattr(user, field, value)
        _commit(db, f"update user {user_id}")
        db.refresh(user)
        return user

    @staticmethod
    def deactivate_user(db: Session, user_id: int, acting_user_id: int) -> User:
        """Soft delete. Actors cannot deactivate themselves."""
        if user_id == acting_user_id:
            raise ForbiddenError("You cannot delete your own account")
        user = UserService.get_user(db, user_id)
        user.is_active = False
        _commit(db, f"deactivate user {user_id}")
        db.refresh(user)
        logger.info("Deactivated user %s (by %s)", user_id, acting_user_id)
        return user

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def list_users(
        db: Session,
        search: Optional[str] = None,
        role_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> List[User]:
        query = db.query(User)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(User.email.ilike(pattern), User.first_name.ilike(pattern), User.last_name.ilike(pattern))
            )
        if role_id:
            query = query.filter(User.role_id == role_id)
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))
        return query.order_by(User.last_name, User.first_name, User.id).all()

    @staticmethod
    def list_users_with_permission(db: Session, module: str, action: str) -> List[User]:
        """Active users whose role holds the pair or is privileged."""
        holding = (
            db.query(RolePermission.role_id)
            .join(Permission, Permission.id == RolePermission.permission_id)
            .filter(Permission.module == module, Permission.action == action)
        )
        users = (
            db.query(User)
            .join(Role, Role.id == User.role_id)
            .filter(User.is_active.is_(True), Role.is_active.is_(True))
            .order_by(User.last_name, User.first_name, User.id)
            .all()
        )
        holder_ids = {rid for (rid,) in holding.all()}
        return [u for u in users if u.role_id in holder_ids or is_privileged(u.role)]

    @staticmethod
    def get_user_stats(db: Session) -> Dict[str, Any]:
        """Headcounts for the admin dashboard. Zeros on store error."""
        since = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=30)
        try:
            total = db.query(func.count(User.id)).scalar() or 0
            active = db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0
            recent = db.query(func.count(User.id)).filter(User.created_at >= since).scalar() or 0
            by_role = {
                name: count
                for name, count in db.query(Role.name, func.count(User.id))
                .outerjoin(User, User.role_id == Role.id)
                .group_by(Role.name)
                .order_by(Role.name)
                .all()
            }
        except SQLAlchemyError:
            logger.warning("User stats unavailable", exc_info=True)
            db.rollback()
            total = active = recent = 0
            by_role = {}
        return {
            "total_users": total,
            "active_users": active,
            "inactive_users": total - active,
            "new_last_30_days": recent,
            "users_by_role": by_role,
        }


user_service = UserService()
