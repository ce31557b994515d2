"""
Tests for review-gated property change requests
"""
import pytest

from landrecords.core.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from landrecords.models.approval import ApprovalStatus, Decision, WorkflowType
from landrecords.models.change_history import ChangeHistory, ChangeType
from landrecords.models.property import Property
from landrecords.services.approval_service import approval_service
from landrecords.services.property_service import build_proposed_changes, property_service


def test_build_proposed_changes_keeps_only_real_changes(sample_property):
    proposed = build_proposed_changes(sample_property, {
        "registered_owner": "Bob Reyes",
        "lot_area": 350,
        "lot_number": " 12 ",
        "remarks": "",
        "city": "Taytay",
    })

    assert sorted(proposed.keys()) == ["city", "registered_owner"]
    assert proposed.root["registered_owner"].old_value == "Alice Santos"
    assert proposed.root["registered_owner"].field_name == "Registered Owner"


def test_build_proposed_changes_rejects_protected_fields(sample_property):
    with pytest.raises(InvalidArgumentError):
        build_proposed_changes(sample_property, {"created_by_id": 5})


def test_request_property_update_description(db_session, sample_property, manager):
    wf = property_service.request_property_update(
        db_session, sample_property.id, {"registered_owner": "Bob Reyes", "city": "Taytay"}, manager.id,
    )

    assert wf.status == ApprovalStatus.PENDING
    assert wf.workflow_type == WorkflowType.PROPERTY_UPDATE
    assert wf.description == "Update 2 field(s): city, registered_owner"
    assert set(wf.proposed_changes) == {"city", "registered_owner"}


def test_request_property_update_without_changes(db_session, sample_property, manager):
    with pytest.raises(InvalidArgumentError, match="No changes"):
        property_service.request_property_update(
            db_session, sample_property.id, {"registered_owner": "Alice Santos"}, manager.id,
        )


def test_request_property_update_title_collision(db_session, sample_property, manager):
    with pytest.raises(ConflictError):
        property_service.request_property_update(
            db_session, sample_property.id, {"title_number": "TCT-T-1002"}, manager.id,
        )


def test_request_property_update_missing_property(db_session, manager):
    with pytest.raises(NotFoundError):
        property_service.request_property_update(db_session, 9999, {"city": "X"}, manager.id)


def test_deletion_then_restoration_round_trip(db_session, sample_property, manager, approver):
    deletion = property_service.request_deletion(db_session, sample_property.id, manager.id, "Duplicate title")
    assert deletion.workflow_type == WorkflowType.DELETION
    assert deletion.description == "Delete property TCT-T-1001: Duplicate title"

    approval_service.decide(db_session, deletion.id, approver.id, Decision.APPROVED)
    assert db_session.get(Property, sample_property.id).is_deleted is True

    with pytest.raises(ConflictError):
        property_service.request_deletion(db_session, sample_property.id, manager.id)

    restoration = property_service.request_restoration(db_session, sample_property.id, manager.id)
    approval_service.decide(db_session, restoration.id, approver.id, Decision.APPROVED)
    assert db_session.get(Property, sample_property.id).is_deleted is False

    types = [
        r.change_type for r in db_session.query(ChangeHistory)
        .filter(ChangeHistory.property_id == sample_property.id)
        .order_by(ChangeHistory.id)
    ]
    assert types == [ChangeType.DELETE, ChangeType.RESTORE]


def test_restoration_requires_deleted_property(db_session, sample_property, manager):
    with pytest.raises(ConflictError):
        property_service.request_restoration(db_session, sample_property.id, manager.id)


def test_list_properties_hides_deleted(db_session, sample_property, manager, approver):
    deletion = property_service.request_deletion(db_session, sample_property.id, manager.id)
    approval_service.decide(db_session, deletion.id, approver.id, Decision.APPROVED)

    visible = property_service.list_properties(db_session)
    everything = property_service.list_properties(db_session, include_deleted=True)

    assert visible["total"] == 2
    assert everything["total"] == 3


def test_create_property_duplicate_title(db_session, manager):
    with pytest.raises(ConflictError):
        property_service.create_property(
            db_session, {"title_number": "TCT-T-1001", "registered_owner": "X"}, manager.id,
        )


@pytest.mark.parametrize("updates", [
    {"lot_area": "big"},
    {"registered_owner": None},
    {"title_number": ""},
])
def test_request_property_update_rejects_unstorable_values(db_session, sample_property, manager, updates):
    with pytest.raises(InvalidArgumentError):
        property_service.request_property_update(db_session, sample_property.id, updates, manager.id)
