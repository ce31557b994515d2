"""Seed the super-admin actor."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from landrecords.core.config import settings
from landrecords.core.security import hash_password
from landrecords.db.seeds.seed_roles import SUPER_ADMIN_ROLE
from landrecords.models.role import Role
from landrecords.models.user import User

logger = logging.getLogger("landrecords.seeds")


def seed_super_admin(db: Session) -> Optional[User]:
    """Create the super-admin user from settings if it doesn't exist."""
    email = settings.SUPER_ADMIN_EMAIL.lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        return existing

    role = db.query(Role).filter(Role.name == SUPER_ADMIN_ROLE).first()
    if not role:
        logger.warning("Role %r missing. Run seed_roles first.", SUPER_ADMIN_ROLE)
        return None

    user = User(
        email=email,
        hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
        first_name="System",
        last_name="Administrator",
        role_id=role.id,
        is_active=True,
    )
    db.add(user)
    db.commit()
    logger.info("Seeded super admin %s", email)
    return user
