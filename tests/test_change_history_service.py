"""
Tests for change history queries
"""
from landrecords.models.approval import Decision, WorkflowType
from landrecords.models.change_history import ChangeType
from landrecords.services.approval_service import approval_service
from landrecords.services.change_history_service import change_history_service


def _approve(db, prop, initiator, approver, changes):
    wf = approval_service.create_request(
        db, prop.id, WorkflowType.PROPERTY_UPDATE, "Edit", initiator.id, changes,
    )
    approval_service.decide(db, wf.id, approver.id, Decision.APPROVED)
    return wf


def test_history_queries_and_stats(db_session, sample_property, manager, approver, admin):
    _approve(db_session, sample_property, manager, approver, {
        "registered_owner": {"oldValue": "Alice Santos", "newValue": "Bob"},
        "city": {"oldValue": "Antipolo", "newValue": "Taytay"},
    })
    _approve(db_session, sample_property, manager, admin, {
        "registered_owner": {"oldValue": "Bob", "newValue": "Carol"},
    })

    rows = change_history_service.list_for_entity(db_session, sample_property.id)
    assert len(rows) == 3
    assert rows[0].new_value == "Carol"

    page = change_history_service.query(db_session, field_name="registered_owner", page_size=1)
    assert page["total"] == 2
    assert page["total_pages"] == 2
    assert change_history_service.query(db_session, actor_id=admin.id)["total"] == 1
    assert change_history_service.query(db_session, search="Taytay")["total"] == 1
    assert change_history_service.query(db_session, change_type=ChangeType.DELETE)["total"] == 0

    stats = change_history_service.get_stats(db_session)
    assert stats["total_changes"] == 3
    assert stats["top_users"][0] == {"user_id": approver.id, "email": approver.email, "count": 2}
    assert stats["top_fields"][0] == {"field_name": "registered_owner", "count": 2}
