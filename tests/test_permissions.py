"""
Tests for the permission model and the per-request principal
"""
import dataclasses

import pytest

from landrecords.core.config import settings
from landrecords.core.permissions import (
    PERMISSION_CATALOG, PERMISSIONS, Principal, PermissionPair,
    has_permission, has_any_permission, has_all_permissions, is_privileged,
)
from landrecords.services.authz_service import load_principal


ALL_PAIRS = [pair for pair, _ in PERMISSION_CATALOG]


def test_catalog_pairs_are_unique():
    """Each (module, action) appears once in the catalog"""
    assert len(set(ALL_PAIRS)) == len(ALL_PAIRS)
    assert PERMISSIONS.APPROVAL_APPROVE.name == "approval.approve"


def test_has_permission_matches_assigned_set_exactly(db_session, role_factory, user_factory):
    """A non-privileged actor holds exactly the pairs of its role"""
    granted = {("property", "read"), ("approval", "create"), ("tax", "update")}
    role = role_factory("Mixed", *sorted(granted))
    user = user_factory("mixed@example.com", role)

    principal = load_principal(db_session, user.id)

    for pair in ALL_PAIRS:
        assert principal.has_permission(pair.module, pair.action) == (tuple(pair) in granted)


def test_privileged_role_bypasses_pair_lookup(db_session, admin):
    """The bypass flag grants every pair, including ones outside the catalog"""
    principal = load_principal(db_session, admin.id)

    assert principal.privileged
    assert all(principal.has_permission(p.module, p.action) for p in ALL_PAIRS)
    assert principal.has_permission("reports", "generate")
    assert principal.has_module_access("anything")


def test_privilege_follows_flag_not_name(db_session, role_factory, user_factory):
    """A role named like an admin gets nothing extra without the flag"""
    role = role_factory("Super Administrator", ("property", "read"))
    user = user_factory("lookalike@example.com", role)

    principal = load_principal(db_session, user.id)

    assert not principal.privileged
    assert not principal.has_permission("property", "update")


def test_system_roles_privileged_only_when_enabled(db_session, role_named, monkeypatch):
    """is_system grants blanket access only under SYSTEM_ROLES_PRIVILEGED"""
    viewer = role_named("Viewer")
    assert viewer.is_system
    assert not is_privileged(viewer)

    monkeypatch.setattr(settings, "SYSTEM_ROLES_PRIVILEGED", True)
    assert is_privileged(viewer)


def test_any_and_all_permissions(db_session, clerk):
    principal = load_principal(db_session, clerk.id)

    assert principal.has_any_permission([("property", "update"), ("property", "read")])
    assert not principal.has_any_permission([("property", "update"), ("role", "read")])
    assert not principal.has_any_permission([])
    assert principal.has_all_permissions([PERMISSIONS.PROPERTY_READ])
    assert not principal.has_all_permissions([PERMISSIONS.PROPERTY_READ, PERMISSIONS.PROPERTY_UPDATE])
    assert principal.has_any_permission([{"module": "property", "action": "read"}])


def test_inactive_actor_fails_every_check(db_session, role_named, user_factory):
    """Deactivated users evaluate to False even with a privileged role"""
    user = user_factory("gone@example.com", role_named("Super Admin"), is_active=False)

    principal = load_principal(db_session, user.id)

    assert principal.is_authenticated
    assert not principal.has_permission("property", "read")
    assert not principal.has_any_permission(ALL_PAIRS)
    assert not principal.has_all_permissions([PERMISSIONS.PROPERTY_READ])
    assert not principal.has_module_access("property")
    assert principal.permissions_by_module() == {}


def test_unknown_actor_is_anonymous(db_session, seeded):
    principal = load_principal(db_session, 99999)

    assert not principal.is_authenticated
    assert not principal.has_permission("property", "read")
    assert load_principal(db_session, None) == Principal.anonymous()


def test_function_forms_accept_missing_principal():
    assert has_permission(None, "property", "read") is False
    assert has_any_permission(None, [("property", "read")]) is False
    assert has_all_permissions(None, []) is False


def test_module_access_and_grouping(db_session, manager):
    principal = load_principal(db_session, manager.id)

    assert principal.has_module_access("property")
    assert not principal.has_module_access("role")
    grouped = principal.permissions_by_module()
    assert grouped["approval"] == ["cancel", "create", "read"]
    assert grouped["property"] == ["create", "delete", "read", "update"]


def test_principal_is_a_snapshot(db_session, clerk, role_named, perm_ids):
    """Role edits are not observed until the principal is reloaded"""
    principal = load_principal(db_session, clerk.id)
    assert not principal.has_permission("property", "update")

    from landrecords.services.role_service import role_service
    role_service.update_role(
        db_session, clerk.role_id, "Clerk", True,
        perm_ids(("property", "read"), ("property", "update")),
    )

    assert not principal.has_permission("property", "update")
    assert load_principal(db_session, clerk.id).has_permission("property", "update")


def test_principal_is_immutable():
    principal = Principal(user_id=1, is_active=True, permissions=frozenset({PermissionPair("a", "b")}))
    with pytest.raises(dataclasses.FrozenInstanceError):
        principal.privileged = True
