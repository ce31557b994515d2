"""Loads the per-request authorization snapshot."""

from typing import Optional

from sqlalchemy.orm import Session

from landrecords.core.permissions import Principal
from landrecords.models.user import User


def load_principal(db: Session, user_id: Optional[int]) -> Principal:
    """Read the actor, its role and the role's permissions in one pass.

    A missing actor yields an anonymous principal. An inactive actor yields a
    principal whose checks all evaluate to False.
    """
    if user_id is None:
        return Principal.anonymous()
    user = db.get(User, user_id)
    if user is None:
        return Principal.anonymous()
    return Principal.from_user(user)
