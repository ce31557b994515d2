"""
Concurrent decide() calls on one workflow: exactly one transition wins
"""
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import landrecords.models  # noqa: F401
from landrecords.core.exceptions import ConflictError, TransactionFailureError
from landrecords.db.base import Base
from landrecords.db.immutability import register_immutability_listeners
from landrecords.db.seeds.seed_roles import seed_roles
from landrecords.db.seeds.seed_sample_data import seed_sample_data
from landrecords.db.seeds.seed_super_admin import seed_super_admin
from landrecords.models.approval import ApprovalStatus, ApprovalWorkflow, Decision, WorkflowType
from landrecords.models.change_history import ChangeHistory
from landrecords.models.property import Property
from landrecords.services.approval_service import approval_service

WORKERS = 6


@pytest.fixture
def file_session_factory(tmp_path):
    """Real file database so each thread gets its own connection"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    register_immutability_listeners()
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


def test_concurrent_decisions_single_winner(file_session_factory):
    setup = file_session_factory()
    seed_roles(setup)
    admin = seed_super_admin(setup)
    seed_sample_data(setup)
    prop = setup.query(Property).filter(Property.title_number == "TCT-T-1001").one()
    wf = approval_service.create_request(
        setup,
        property_id=prop.id,
        workflow_type=WorkflowType.PROPERTY_UPDATE,
        description="Owner correction",
        initiator_id=admin.id,
        proposed_changes={
            "registered_owner": {"oldValue": "Alice Santos", "newValue": "Bob Reyes"},
            "lot_area": {"oldValue": 350.0, "newValue": 360.0},
        },
    )
    workflow_id, admin_id, prop_id = wf.id, admin.id, prop.id
    setup.close()

    barrier = threading.Barrier(WORKERS)

    def attempt(i):
        session = file_session_factory()
        try:
            barrier.wait()
            if i % 2:
                approval_service.decide(session, workflow_id, admin_id, Decision.REJECTED, f"reviewer {i}")
            else:
                approval_service.decide(session, workflow_id, admin_id, Decision.APPROVED)
            return "ok"
        except ConflictError:
            return "conflict"
        except TransactionFailureError:
            return "failed"
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        outcomes = list(pool.map(attempt, range(WORKERS)))

    assert outcomes.count("ok") == 1
    assert set(outcomes) <= {"ok", "conflict", "failed"}

    check = file_session_factory()
    try:
        final = check.get(ApprovalWorkflow, workflow_id)
        history = check.query(ChangeHistory).filter(ChangeHistory.property_id == prop_id).count()
        if final.status == ApprovalStatus.APPROVED:
            assert history == 2
            assert check.get(Property, prop_id).registered_owner == "Bob Reyes"
        else:
            assert final.status == ApprovalStatus.REJECTED
            assert history == 0
            assert check.get(Property, prop_id).registered_owner == "Alice Santos"
    finally:
        check.close()
