"""Seed the permission catalog and default system roles."""

import logging
from typing import Dict, List

from sqlalchemy.orm import Session

from landrecords.core.permissions import PERMISSION_CATALOG, PermissionPair
from landrecords.models.permission import Permission, RolePermission
from landrecords.models.role import Role

logger = logging.getLogger("landrecords.seeds")

SUPER_ADMIN_ROLE = "Super Admin"

_READS = ["property", "tax", "title_movement", "document"]

ROLE_DEFINITIONS: List[Dict] = [
    {
        "name": SUPER_ADMIN_ROLE,
        "description": "Full system access",
        "bypass_all_checks": True,
        "pairs": "*",
    },
    {
        "name": "Property Manager",
        "description": "Maintains property, tax, title movement and document records",
        "pairs": [
            (module, action)
            for module in ("property", "tax", "title_movement")
            for action in ("create", "read", "update", "delete")
        ] + [
            ("document", "create"), ("document", "read"), ("document", "delete"),
            ("approval", "create"), ("approval", "read"), ("approval", "cancel"),
        ],
    },
    {
        "name": "Approver",
        "description": "Reviews and decides change requests",
        "pairs": [(m, "read") for m in _READS] + [
            ("approval", "read"), ("approval", "approve"), ("approval", "reject"),
            ("audit", "read"),
        ],
    },
    {
        "name": "Finance Manager",
        "description": "Manages tax records",
        "pairs": [("tax", a) for a in ("create", "read", "update", "delete")] + [
            ("property", "read"), ("document", "read"), ("approval", "read"), ("audit", "read"),
        ],
    },
    {
        "name": "Viewer",
        "description": "Read-only access",
        "pairs": [(m, "read") for m in _READS],
    },
]


def seed_permissions(db: Session) -> int:
    """Insert catalog entries that are missing. Returns how many were added."""
    existing = {(p.module, p.action) for p in db.query(Permission).all()}
    added = 0
    for pair, description in PERMISSION_CATALOG:
        if (pair.module, pair.action) in existing:
            continue
        db.add(Permission(name=pair.name, module=pair.module, action=pair.action, description=description))
        added += 1
    db.flush()
    return added


def seed_roles(db: Session) -> int:
    """Insert the catalog and default roles if they don't already exist."""
    seed_permissions(db)
    by_pair = {PermissionPair(p.module, p.action): p for p in db.query(Permission).all()}

    created = 0
    for definition in ROLE_DEFINITIONS:
        if db.query(Role).filter(Role.name == definition["name"]).first():
            continue
        pairs = list(by_pair) if definition["pairs"] == "*" else [PermissionPair(*p) for p in definition["pairs"]]
        role = Role(
            name=definition["name"],
            description=definition["description"],
            is_system=True,
            is_active=True,
            bypass_all_checks=definition.get("bypass_all_checks", False),
        )
        role.permissions = [RolePermission(permission_id=by_pair[pair].id) for pair in pairs]
        db.add(role)
        created += 1

    db.commit()
    logger.info("Seeded %d role(s)", created)
    return created
