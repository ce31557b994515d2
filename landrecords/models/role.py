"""Role model for RBAC."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from landrecords.db.base import Base


class Role(Base):
    """Named group of permissions assigned to actors.

    ``is_system`` protects the name and existence of seeded roles.
    ``bypass_all_checks`` is the explicit privileged-role capability; it is set
    administratively and is independent of the display name.
    """
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)
    is_system = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    bypass_all_checks = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    permissions = relationship(
        "RolePermission",
        back_populates="role",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    users = relationship("User", back_populates="role", lazy="dynamic")

    @property
    def permission_pairs(self) -> set:
        return {(rp.permission.module, rp.permission.action) for rp in self.permissions}
