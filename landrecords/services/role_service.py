"""Role service: roles and their permission assignments."""

import logging
from typing import Iterable, List, Optional, Dict, Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from landrecords.core.exceptions import (
    ConflictError, ForbiddenError, InvalidArgumentError, NotFoundError, TransactionFailureError,
)
from landrecords.models.permission import Permission, RolePermission
from landrecords.models.role import Role
from landrecords.models.user import User

logger = logging.getLogger("landrecords.roles")


def _resolve_permission_ids(db: Session, permission_ids: Iterable[int]) -> List[int]:
    ids = sorted({int(pid) for pid in (permission_ids or [])})
    if not ids:
        raise InvalidArgumentError("At least one permission is required")
    found = {pid for (pid,) in db.query(Permission.id).filter(Permission.id.in_(ids)).all()}
    missing = [pid for pid in ids if pid not in found]
    if missing:
        raise InvalidArgumentError(f"Unknown permission ids: {', '.join(map(str, missing))}")
    return ids


class RoleService:
    """Create, update and delete roles while protecting system roles."""

    @staticmethod
    def create_role(
        db: Session,
        name: str,
        permission_ids: Iterable[int],
        description: Optional[str] = None,
    ) -> Role:
        """Create a role together with its permission assignments.

        Raises:
            ConflictError: a role with this name already exists.
            InvalidArgumentError: empty or unknown permission ids.
        """
        name = (name or "").strip()
        if not name:
            raise InvalidArgumentError("Role name is required")
        if db.query(Role).filter(Role.name == name).first():
            raise ConflictError(f"Role '{name}' already exists")
        ids = _resolve_permission_ids(db, permission_ids)

        role = Role(name=name, description=description, is_system=False, is_active=True)
        role.permissions = [RolePermission(permission_id=pid) for pid in ids]
        db.add(role)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError(f"Role '{name}' already exists")
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to create role %r", name)
            raise TransactionFailureError()
        db.refresh(role)
        logger.info("Created role %s (%d permissions)", role.name, len(ids))
        return role

    @staticmethod
    def update_role(
        db: Session,
        role_id: int,
        name: str,
        is_active: bool,
        permission_ids: Iterable[int],
        description: Optional[str] = None,
    ) -> Role:
        """Replace a role's scalar fields and its whole permission set.

        The permission set is deleted and recreated in the same transaction
        as the scalar update.
        """
        role = db.get(Role, role_id)
        if role is None:
            raise NotFoundError(f"Role {role_id} not found")

        name = (name or "").strip()
        if not name:
            raise InvalidArgumentError("Role name is required")
        if role.is_system and name != role.name:
            raise ForbiddenError("System role names cannot be changed")
        if name != role.name:
            clash = db.query(Role).filter(Role.name == name, Role.id != role_id).first()
            if clash:
                raise ConflictError(f"Role '{name}' already exists")
        ids = _resolve_permission_ids(db, permission_ids)

        try:
            role.permissions.clear()
            db.flush()  # orphans deleted before the new rows go in
            role.permissions.extend(RolePermission(permission_id=pid) for pid in ids)
            role.name = name
            role.description = description
            role.is_active = bool(is_active)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError(f"Role '{name}' already exists")
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to update role %s", role_id)
            raise TransactionFailureError()
        db.refresh(role)
        logger.info("Updated role %s (%d permissions)", role.name, len(ids))
        return role

    @staticmethod
    def delete_role(db: Session, role_id: int) -> None:
        """Delete a non-system role that no actor holds."""
        role = db.get(Role, role_id)
        if role is None:
            raise NotFoundError(f"Role {role_id} not found")
        if role.is_system:
            raise ForbiddenError("System roles cannot be deleted")
        holders = db.query(func.count(User.id)).filter(User.role_id == role_id).scalar()
        if holders:
            raise ConflictError(f"Role '{role.name}' is assigned to {holders} user(s)")
        try:
            db.delete(role)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to delete role %s", role_id)
            raise TransactionFailureError()
        logger.info("Deleted role %s", role_id)

    @staticmethod
    def list_roles(db: Session) -> List[Role]:
        """System roles first, then by name."""
        return db.query(Role).order_by(Role.is_system.desc(), Role.name.asc()).all()

    @staticmethod
    def get_role(db: Session, role_id: int) -> Role:
        role = db.get(Role, role_id)
        if role is None:
            raise NotFoundError(f"Role {role_id} not found")
        return role

    @staticmethod
    def list_permissions(db: Session) -> List[Permission]:
        return db.query(Permission).order_by(Permission.module, Permission.action).all()

    @staticmethod
    def count_users(db: Session, role_id: int) -> int:
        return db.query(func.count(User.id)).filter(User.role_id == role_id).scalar() or 0

    @staticmethod
    def get_role_stats(db: Session) -> Dict[str, Any]:
        """Dashboard counts. Advisory only: a store error yields zeros."""
        try:
            total = db.query(func.count(Role.id)).scalar() or 0
            active = db.query(func.count(Role.id)).filter(Role.is_active.is_(True)).scalar() or 0
            system = db.query(func.count(Role.id)).filter(Role.is_system.is_(True)).scalar() or 0
            users = db.query(func.count(User.id)).scalar() or 0
            permissions = db.query(func.count(Permission.id)).scalar() or 0
        except SQLAlchemyError:
            logger.warning("Role stats unavailable", exc_info=True)
            db.rollback()
            total = active = system = users = permissions = 0
        return {
            "total_roles": total,
            "active_roles": active,
            "inactive_roles": total - active,
            "system_roles": system,
            "total_users": users,
            "total_permissions": permissions,
        }


role_service = RoleService()
