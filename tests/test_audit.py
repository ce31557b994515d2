"""
Tests for the audit log and the append-only guards
"""
from datetime import datetime, timedelta

import pytest

from landrecords.core.exceptions import ImmutableRecordError
from landrecords.models.approval import Decision, WorkflowType
from landrecords.models.audit_log import AuditAction, AuditLog
from landrecords.models.change_history import ChangeHistory
from landrecords.services.approval_service import approval_service
from landrecords.services.audit_service import audit_service


def test_log_records_entry(db_session, admin):
    entry = audit_service.log(
        db_session,
        action=AuditAction.LOGIN,
        entity_type="User",
        entity_id=admin.id,
        actor_id=admin.id,
        metadata={"source": "test"},
        ip_address="10.0.0.1",
        user_agent="pytest",
    )

    stored = db_session.get(AuditLog, entry.id)
    assert stored.action == AuditAction.LOGIN
    assert stored.entity_id == str(admin.id)
    assert stored.metadata_json == {"source": "test"}


def test_log_rejects_unknown_action(db_session, admin):
    with pytest.raises(ValueError):
        audit_service.log(db_session, action="SHRED", entity_type="User")


def test_audit_rows_cannot_be_updated_or_deleted(db_session, admin):
    entry = audit_service.log(db_session, AuditAction.LOGIN, "User", admin.id, admin.id)

    entry.action = AuditAction.LOGOUT
    with pytest.raises(ImmutableRecordError):
        db_session.commit()
    db_session.rollback()

    db_session.delete(db_session.get(AuditLog, entry.id))
    with pytest.raises(ImmutableRecordError):
        db_session.commit()
    db_session.rollback()

    assert db_session.get(AuditLog, entry.id).action == AuditAction.LOGIN


def test_change_history_rows_cannot_be_edited(db_session, sample_property, manager, approver):
    wf = approval_service.create_request(
        db_session, sample_property.id, WorkflowType.PROPERTY_UPDATE, "Owner fix", manager.id,
        {"registered_owner": {"oldValue": "Alice Santos", "newValue": "Bob"}},
    )
    approval_service.decide(db_session, wf.id, approver.id, Decision.APPROVED)
    row = db_session.query(ChangeHistory).one()

    row.new_value = "Mallory"
    with pytest.raises(ImmutableRecordError):
        db_session.commit()
    db_session.rollback()

    assert db_session.query(ChangeHistory).one().new_value == "Bob"


def test_decisions_are_audited_in_the_same_transaction(db_session, sample_property, manager, approver):
    wf = approval_service.create_request(
        db_session, sample_property.id, WorkflowType.PROPERTY_UPDATE, "Owner fix", manager.id,
        {"registered_owner": {"oldValue": "Alice Santos", "newValue": "Bob"}},
    )
    approval_service.decide(db_session, wf.id, approver.id, Decision.APPROVED)

    entry = db_session.query(AuditLog).filter(AuditLog.action == AuditAction.APPROVE).one()
    assert entry.entity_type == "ApprovalWorkflow"
    assert entry.entity_id == str(wf.id)
    assert entry.user_id == approver.id
    assert entry.metadata_json["fields_applied"] == 1


def test_query_logs_filters_and_paginates(db_session, admin, manager):
    for _ in range(3):
        audit_service.log(db_session, AuditAction.LOGIN, "User", admin.id, admin.id, ip_address="10.0.0.9")
    audit_service.log(db_session, AuditAction.UPDATE, "Role", 7, manager.id)

    page = audit_service.query_logs(db_session, action=AuditAction.LOGIN, page_size=2)
    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert len(page["logs"]) == 2

    assert audit_service.query_logs(db_session, entity_type="Role")["total"] == 1
    assert audit_service.query_logs(db_session, actor_id=manager.id)["total"] == 1
    assert audit_service.query_logs(db_session, search="10.0.0.9")["total"] == 3
    future = datetime.utcnow() + timedelta(days=1)
    assert audit_service.query_logs(db_session, date_from=future)["total"] == 0
