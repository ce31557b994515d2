"""
Tests for the role store: creation, full permission replacement and system-role protection
"""
import pytest

from landrecords.core.exceptions import ConflictError, ForbiddenError, InvalidArgumentError, NotFoundError
from landrecords.models.permission import RolePermission
from landrecords.models.role import Role
from landrecords.services.role_service import role_service


def _snapshot(db, role_id):
    db.expire_all()
    role = db.get(Role, role_id)
    return role.name, role.description, role.is_active, sorted(role.permission_pairs)


def test_create_role_with_permissions(db_session, perm_ids):
    role = role_service.create_role(
        db_session, "Clerk", perm_ids(("property", "read"), ("tax", "read")), "Front desk",
    )

    assert role.id is not None
    assert not role.is_system
    assert role.permission_pairs == {("property", "read"), ("tax", "read")}


def test_create_role_duplicate_name_conflicts(db_session, perm_ids):
    with pytest.raises(ConflictError):
        role_service.create_role(db_session, "Viewer", perm_ids(("property", "read")))


@pytest.mark.parametrize("ids", [[], [424242]])
def test_create_role_rejects_empty_or_unknown_permissions(db_session, seeded, ids):
    with pytest.raises(InvalidArgumentError):
        role_service.create_role(db_session, "Nobody", ids)
    assert db_session.query(Role).filter(Role.name == "Nobody").first() is None


def test_update_role_replaces_whole_permission_set(db_session, role_factory, perm_ids):
    role = role_factory("Clerk", ("property", "read"), ("tax", "read"))

    updated = role_service.update_role(
        db_session, role.id, "Senior Clerk", False,
        perm_ids(("property", "update"), ("tax", "read")), "Promoted",
    )

    assert updated.name == "Senior Clerk"
    assert updated.is_active is False
    assert updated.description == "Promoted"
    assert updated.permission_pairs == {("property", "update"), ("tax", "read")}
    assert db_session.query(RolePermission).filter(RolePermission.role_id == role.id).count() == 2


def test_update_missing_role_not_found(db_session, perm_ids):
    with pytest.raises(NotFoundError):
        role_service.update_role(db_session, 9999, "X", True, perm_ids(("property", "read")))


def test_update_role_name_collision_conflicts(db_session, role_factory, perm_ids):
    role = role_factory("Clerk", ("property", "read"))
    with pytest.raises(ConflictError):
        role_service.update_role(db_session, role.id, "Approver", True, perm_ids(("property", "read")))


def test_system_role_rename_forbidden_and_store_unchanged(db_session, role_named, perm_ids):
    viewer = role_named("Viewer")
    before = _snapshot(db_session, viewer.id)

    with pytest.raises(ForbiddenError):
        role_service.update_role(db_session, viewer.id, "Guest", True, perm_ids(("property", "read")))

    assert _snapshot(db_session, viewer.id) == before


def test_system_role_permissions_can_change_when_name_kept(db_session, role_named, perm_ids):
    viewer = role_named("Viewer")
    updated = role_service.update_role(
        db_session, viewer.id, "Viewer", True, perm_ids(("property", "read"), ("audit", "read")),
    )
    assert updated.permission_pairs == {("property", "read"), ("audit", "read")}


def test_delete_system_role_forbidden(db_session, role_named):
    viewer = role_named("Viewer")
    before = _snapshot(db_session, viewer.id)

    with pytest.raises(ForbiddenError):
        role_service.delete_role(db_session, viewer.id)

    assert _snapshot(db_session, viewer.id) == before


def test_delete_role_with_users_conflicts(db_session, clerk):
    before = _snapshot(db_session, clerk.role_id)

    with pytest.raises(ConflictError):
        role_service.delete_role(db_session, clerk.role_id)

    assert _snapshot(db_session, clerk.role_id) == before


def test_delete_unused_role(db_session, role_factory):
    role = role_factory("Temp", ("property", "read"))
    role_service.delete_role(db_session, role.id)

    assert db_session.get(Role, role.id) is None
    assert db_session.query(RolePermission).filter(RolePermission.role_id == role.id).count() == 0


def test_delete_missing_role_not_found(db_session, seeded):
    with pytest.raises(NotFoundError):
        role_service.delete_role(db_session, 9999)


def test_list_roles_system_first_then_name(db_session, role_factory):
    role_factory("Aardvark", ("property", "read"))
    names = [r.name for r in role_service.list_roles(db_session)]

    assert names[-1] == "Aardvark"
    system = names[:-1]
    assert system == sorted(system)


def test_list_permissions_sorted_by_module_and_action(db_session, seeded):
    perms = role_service.list_permissions(db_session)
    keys = [(p.module, p.action) for p in perms]
    assert keys == sorted(keys)


def test_role_stats(db_session, clerk):
    stats = role_service.get_role_stats(db_session)

    assert stats["total_roles"] == 6
    assert stats["system_roles"] == 5
    assert stats["active_roles"] == 6
    assert stats["inactive_roles"] == 0
    assert stats["total_users"] == 2
    assert stats["total_permissions"] == 32
