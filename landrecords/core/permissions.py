"""Permission model: the (module, action) catalog and in-memory checks.

Everything here is pure. A ``Principal`` is a snapshot of one actor's role
and permission set, loaded once per request (see
``landrecords.services.authz_service.load_principal``) and then evaluated any
number of times with zero I/O.

The snapshot does not observe role edits made after it was taken. Callers
that keep a principal longer than a single request accept that staleness
until they reload it.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, NamedTuple, Optional

from landrecords.core.config import settings


class PermissionPair(NamedTuple):
    module: str
    action: str

    @property
    def name(self) -> str:
        return f"{self.module}.{self.action}"


class PERMISSIONS:
    """Catalog constants for commonly checked capabilities."""

    PROPERTY_CREATE = PermissionPair("property", "create")
    PROPERTY_READ = PermissionPair("property", "read")
    PROPERTY_UPDATE = PermissionPair("property", "update")
    PROPERTY_DELETE = PermissionPair("property", "delete")

    USER_CREATE = PermissionPair("user", "create")
    USER_READ = PermissionPair("user", "read")
    USER_UPDATE = PermissionPair("user", "update")
    USER_DELETE = PermissionPair("user", "delete")

    ROLE_CREATE = PermissionPair("role", "create")
    ROLE_READ = PermissionPair("role", "read")
    ROLE_UPDATE = PermissionPair("role", "update")
    ROLE_DELETE = PermissionPair("role", "delete")

    APPROVAL_CREATE = PermissionPair("approval", "create")
    APPROVAL_READ = PermissionPair("approval", "read")
    APPROVAL_APPROVE = PermissionPair("approval", "approve")
    APPROVAL_REJECT = PermissionPair("approval", "reject")
    APPROVAL_CANCEL = PermissionPair("approval", "cancel")

    TAX_CREATE = PermissionPair("tax", "create")
    TAX_READ = PermissionPair("tax", "read")
    TAX_UPDATE = PermissionPair("tax", "update")
    TAX_DELETE = PermissionPair("tax", "delete")

    TITLE_MOVEMENT_CREATE = PermissionPair("title_movement", "create")
    TITLE_MOVEMENT_READ = PermissionPair("title_movement", "read")
    TITLE_MOVEMENT_UPDATE = PermissionPair("title_movement", "update")
    TITLE_MOVEMENT_DELETE = PermissionPair("title_movement", "delete")

    DOCUMENT_CREATE = PermissionPair("document", "create")
    DOCUMENT_READ = PermissionPair("document", "read")
    DOCUMENT_DELETE = PermissionPair("document", "delete")

    AUDIT_READ = PermissionPair("audit", "read")
    AUDIT_EXPORT = PermissionPair("audit", "export")

    SYSTEM_READ = PermissionPair("system", "read")
    SYSTEM_UPDATE = PermissionPair("system", "update")


# (pair, description) in seeding order
PERMISSION_CATALOG: List[tuple] = [
    (PERMISSIONS.PROPERTY_CREATE, "Create new properties"),
    (PERMISSIONS.PROPERTY_READ, "View properties"),
    (PERMISSIONS.PROPERTY_UPDATE, "Update property details"),
    (PERMISSIONS.PROPERTY_DELETE, "Delete properties"),
    (PERMISSIONS.USER_CREATE, "Create new users"),
    (PERMISSIONS.USER_READ, "View users"),
    (PERMISSIONS.USER_UPDATE, "Update user details"),
    (PERMISSIONS.USER_DELETE, "Delete users"),
    (PERMISSIONS.ROLE_CREATE, "Create new roles"),
    (PERMISSIONS.ROLE_READ, "View roles"),
    (PERMISSIONS.ROLE_UPDATE, "Update roles"),
    (PERMISSIONS.ROLE_DELETE, "Delete roles"),
    (PERMISSIONS.APPROVAL_CREATE, "Create approval requests"),
    (PERMISSIONS.APPROVAL_READ, "View approval requests"),
    (PERMISSIONS.APPROVAL_APPROVE, "Approve requests"),
    (PERMISSIONS.APPROVAL_REJECT, "Reject requests"),
    (PERMISSIONS.APPROVAL_CANCEL, "Cancel own pending requests"),
    (PERMISSIONS.TAX_CREATE, "Create tax records"),
    (PERMISSIONS.TAX_READ, "View tax records"),
    (PERMISSIONS.TAX_UPDATE, "Update tax records"),
    (PERMISSIONS.TAX_DELETE, "Delete tax records"),
    (PERMISSIONS.TITLE_MOVEMENT_CREATE, "Create title movements"),
    (PERMISSIONS.TITLE_MOVEMENT_READ, "View title movements"),
    (PERMISSIONS.TITLE_MOVEMENT_UPDATE, "Update title movements"),
    (PERMISSIONS.TITLE_MOVEMENT_DELETE, "Delete title movements"),
    (PERMISSIONS.DOCUMENT_CREATE, "Upload documents"),
    (PERMISSIONS.DOCUMENT_READ, "View documents"),
    (PERMISSIONS.DOCUMENT_DELETE, "Delete documents"),
    (PERMISSIONS.AUDIT_READ, "View audit logs"),
    (PERMISSIONS.AUDIT_EXPORT, "Export audit logs"),
    (PERMISSIONS.SYSTEM_READ, "View system configuration"),
    (PERMISSIONS.SYSTEM_UPDATE, "Update system configuration"),
]


def is_privileged(role) -> bool:
    """Blanket-access escape hatch.

    Driven by the explicit ``bypass_all_checks`` flag on the role, never by
    the role's display name. ``is_system`` counts only when
    ``SYSTEM_ROLES_PRIVILEGED`` is enabled.
    """
    if role is None:
        return False
    if getattr(role, "bypass_all_checks", False):
        return True
    return bool(settings.SYSTEM_ROLES_PRIVILEGED and getattr(role, "is_system", False))


def as_pair(p) -> PermissionPair:
    if isinstance(p, PermissionPair):
        return p
    if isinstance(p, dict):
        return PermissionPair(p["module"], p["action"])
    module, action = p
    return PermissionPair(module, action)


@dataclass(frozen=True)
class Principal:
    """Immutable authorization snapshot of one actor."""

    user_id: Optional[int] = None
    role_id: Optional[int] = None
    role_name: Optional[str] = None
    is_active: bool = False
    privileged: bool = False
    permissions: FrozenSet[PermissionPair] = field(default_factory=frozenset)

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls()

    @classmethod
    def from_user(cls, user) -> "Principal":
        """Build a snapshot from a loaded ``User`` with its role and permissions."""
        role = user.role
        pairs = frozenset(PermissionPair(m, a) for m, a in role.permission_pairs) if role else frozenset()
        return cls(
            user_id=user.id,
            role_id=role.id if role else None,
            role_name=role.name if role else None,
            is_active=bool(user.is_active),
            privileged=is_privileged(role),
            permissions=pairs,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def _can_evaluate(self) -> bool:
        return self.is_authenticated and self.is_active

    def has_permission(self, module: str, action: str) -> bool:
        if not self._can_evaluate():
            return False
        if self.privileged:
            return True
        return PermissionPair(module, action) in self.permissions

    def has_any_permission(self, pairs: Iterable) -> bool:
        if not self._can_evaluate():
            return False
        if self.privileged:
            return True
        return any(as_pair(p) in self.permissions for p in pairs)

    def has_all_permissions(self, pairs: Iterable) -> bool:
        if not self._can_evaluate():
            return False
        if self.privileged:
            return True
        return all(as_pair(p) in self.permissions for p in pairs)

    def has_module_access(self, module: str) -> bool:
        if not self._can_evaluate():
            return False
        if self.privileged:
            return True
        return any(p.module == module for p in self.permissions)

    def permissions_by_module(self) -> Dict[str, List[str]]:
        if not self._can_evaluate():
            return {}
        grouped: Dict[str, List[str]] = {}
        for p in self.permissions:
            grouped.setdefault(p.module, []).append(p.action)
        return {module: sorted(actions) for module, actions in sorted(grouped.items())}


# Function forms for call sites that may hold no principal at all.

def has_permission(principal: Optional[Principal], module: str, action: str) -> bool:
    return principal is not None and principal.has_permission(module, action)


def has_any_permission(principal: Optional[Principal], pairs: Iterable) -> bool:
    return principal is not None and principal.has_any_permission(pairs)


def has_all_permissions(principal: Optional[Principal], pairs: Iterable) -> bool:
    return principal is not None and principal.has_all_permissions(pairs)
