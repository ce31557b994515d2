"""
Tests for actor management
"""
import pytest

from landrecords.core.exceptions import ConflictError, ForbiddenError, InvalidArgumentError, NotFoundError
from landrecords.core.security import verify_password
from landrecords.services.role_service import role_service
from landrecords.services.user_service import user_service


def test_create_user(db_session, role_named):
    user = user_service.create_user(
        db_session, "New.Person@Example.com", "hunter22", "New", "Person", role_named("Viewer").id,
        department="Registry",
    )

    assert user.email == "new.person@example.com"
    assert user.full_name == "New Person"
    assert user.is_active
    assert verify_password("hunter22", user.hashed_password)


def test_create_user_duplicate_email(db_session, admin, role_named):
    with pytest.raises(ConflictError):
        user_service.create_user(db_session, admin.email, "pw123456", "A", "B", role_named("Viewer").id)


def test_create_user_unknown_role(db_session, seeded):
    with pytest.raises(NotFoundError):
        user_service.create_user(db_session, "x@example.com", "pw123456", "A", "B", 9999)


def test_inactive_role_cannot_be_assigned(db_session, role_factory, perm_ids, clerk):
    retired = role_factory("Retired", ("property", "read"))
    role_service.update_role(db_session, retired.id, "Retired", False, perm_ids(("property", "read")))

    with pytest.raises(InvalidArgumentError):
        user_service.create_user(db_session, "x@example.com", "pw123456", "A", "B", retired.id)
    with pytest.raises(InvalidArgumentError):
        user_service.update_user(db_session, clerk.id, role_id=retired.id)


def test_update_user_fields_and_role(db_session, clerk, role_named):
    approver_role = role_named("Approver")
    user = user_service.update_user(db_session, clerk.id, position="Supervisor", role_id=approver_role.id)

    assert user.position == "Supervisor"
    assert user.role.name == "Approver"


def test_update_user_email_collision(db_session, clerk, admin):
    with pytest.raises(ConflictError):
        user_service.update_user(db_session, clerk.id, email=admin.email)


def test_deactivate_user(db_session, clerk, admin):
    user = user_service.deactivate_user(db_session, clerk.id, admin.id)
    assert user.is_active is False


def test_cannot_deactivate_self(db_session, admin):
    with pytest.raises(ForbiddenError):
        user_service.deactivate_user(db_session, admin.id, admin.id)
    assert user_service.get_user(db_session, admin.id).is_active


def test_list_users_with_permission(db_session, admin, clerk, manager, approver, role_named, user_factory):
    user_factory("off@example.com", role_named("Approver"), is_active=False)

    emails = {u.email for u in user_service.list_users_with_permission(db_session, "approval", "approve")}

    assert emails == {admin.email, approver.email}


def test_user_stats(db_session, clerk, manager):
    stats = user_service.get_user_stats(db_session)

    assert stats["total_users"] == 3
    assert stats["active_users"] == 3
    assert stats["inactive_users"] == 0
    assert stats["users_by_role"]["Clerk"] == 1
    assert stats["users_by_role"]["Viewer"] == 0
