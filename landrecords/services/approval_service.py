"""Approval service: single-approver workflow state machine.

PENDING is the only non-terminal state. Every transition out of it is a
conditional UPDATE guarded by ``status = PENDING`` and an affected-row check,
so two concurrent deciders can never both succeed. On approval the change
applier runs in the same transaction as the status write.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from landrecords.core.changes import ProposedChanges
from landrecords.core.config import settings
from landrecords.core.exceptions import (
    ConflictError, ForbiddenError, InvalidArgumentError, LandRecordsError,
    NotFoundError, TransactionFailureError,
)
from landrecords.core.permissions import is_privileged
from landrecords.db.unit_of_work import SqlAlchemyUnitOfWork, coerce_column_value
from landrecords.models.approval import (
    ApprovalWorkflow, ApprovalStatus, Decision, Priority, WorkflowType, priority_rank,
)
from landrecords.models.audit_log import AuditAction
from landrecords.models.property import Property
from landrecords.models.user import User
from landrecords.services.audit_service import AuditService
from landrecords.services.change_applier import get_applier

logger = logging.getLogger("landrecords.approvals")

ALREADY_PROCESSED = "This request has already been processed"
ENTITY_TYPE = "ApprovalWorkflow"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _parse_enum(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidArgumentError(f"Invalid {label} '{value}'. Expected one of: {allowed}")


def _load_actor(db: Session, actor_id: int) -> User:
    actor = db.get(User, actor_id)
    if actor is None:
        raise NotFoundError(f"User {actor_id} not found")
    if not actor.is_active:
        raise ForbiddenError()
    return actor


class ApprovalService:
    """Creates, decides, cancels and expires approval workflows."""

    @staticmethod
    def create_request(
        db: Session,
        property_id: int,
        workflow_type: Union[WorkflowType, str],
        description: str,
        initiator_id: int,
        proposed_changes: Union[ProposedChanges, Dict[str, Any]],
        priority: Union[Priority, str] = Priority.NORMAL,
    ) -> ApprovalWorkflow:
        """Record a PENDING change request.

        Authorization to *request* is the caller's concern; nothing here
        checks approval rights.

        Raises:
            InvalidArgumentError: unknown type/priority, blank description,
                malformed diff, or a diff touching fields that cannot be
                patched.
            NotFoundError: missing target record or initiator.
        """
        workflow_type = _parse_enum(WorkflowType, workflow_type, "workflow type")
        priority = _parse_enum(Priority, priority, "priority")
        if not description or not description.strip():
            raise InvalidArgumentError("A description is required")

        if not isinstance(proposed_changes, ProposedChanges):
            try:
                proposed_changes = ProposedChanges.from_wire(proposed_changes)
            except ValidationError as e:
                raise InvalidArgumentError(f"Malformed proposed changes: {e.error_count()} error(s)")
        if len(proposed_changes) == 0:
            raise InvalidArgumentError("Proposed changes cannot be empty")
        unknown = sorted(set(proposed_changes.keys()) - Property.patchable_fields())
        if unknown:
            raise InvalidArgumentError(f"Unknown or protected fields: {', '.join(unknown)}")
        columns = Property.__table__.columns
        for field_name, change in proposed_changes.root.items():
            coerce_column_value(columns[field_name], change.new_value)

        if db.get(Property, property_id) is None:
            raise NotFoundError(f"Property {property_id} not found")
        if db.get(User, initiator_id) is None:
            raise NotFoundError(f"User {initiator_id} not found")

        now = _utcnow()
        workflow = ApprovalWorkflow(
            property_id=property_id,
            workflow_type=workflow_type,
            description=description.strip(),
            priority=priority,
            status=ApprovalStatus.PENDING,
            proposed_changes=proposed_changes.to_wire(),
            initiated_by_id=initiator_id,
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(workflow)
            db.flush()
            AuditService.log(
                db,
                action=AuditAction.CREATE,
                entity_type=ENTITY_TYPE,
                entity_id=workflow.id,
                actor_id=initiator_id,
                changes=workflow.proposed_changes,
                metadata={"workflow_type": workflow_type.value, "property_id": property_id},
                commit=False,
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to create %s request for property %s", workflow_type.value, property_id)
            raise TransactionFailureError()

        db.refresh(workflow)
        logger.info(
            "Workflow %s created: %s on property %s by user %s (%s)",
            workflow.id, workflow_type.value, property_id, initiator_id, priority.value,
        )
        return workflow

    @staticmethod
    def decide(
        db: Session,
        workflow_id: int,
        actor_id: int,
        decision: Union[Decision, str],
        reason: Optional[str] = None,
    ) -> ApprovalWorkflow:
        """Approve or reject a PENDING workflow exactly once.

        Approval, change application and the audit entry commit together or
        not at all. Any store failure rolls everything back and the workflow
        stays PENDING.

        Raises:
            NotFoundError: workflow or actor missing.
            ConflictError: the workflow is no longer PENDING.
            InvalidArgumentError: rejecting without a reason.
            ForbiddenError: the deciding actor is inactive.
            TransactionFailureError: the store aborted the transaction.
        """
        workflow = db.get(ApprovalWorkflow, workflow_id)
        if workflow is None:
            raise NotFoundError(f"Approval request {workflow_id} not found")
        if workflow.is_terminal:
            raise ConflictError(ALREADY_PROCESSED)

        decision = _parse_enum(Decision, decision, "decision")
        reason = reason.strip() if reason else None
        if decision == Decision.REJECTED and not reason:
            raise InvalidArgumentError("A reason is required when rejecting a request")
        _load_actor(db, actor_id)

        now = _utcnow()
        new_status = ApprovalStatus(decision.value)
        property_id = workflow.property_id
        workflow_type = WorkflowType(workflow.workflow_type)
        proposed_wire = workflow.proposed_changes
        applied = 0

        try:
            result = db.execute(
                update(ApprovalWorkflow)
                .where(
                    ApprovalWorkflow.id == workflow_id,
                    ApprovalWorkflow.status == ApprovalStatus.PENDING,
                )
                .values(
                    status=new_status,
                    approved_by_id=actor_id,
                    approved_at=now,
                    rejected_reason=reason if decision == Decision.REJECTED else None,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConflictError(ALREADY_PROCESSED)

            if decision == Decision.APPROVED:
                applied = get_applier(workflow_type).apply(
                    SqlAlchemyUnitOfWork(db),
                    entity_id=property_id,
                    proposed=ProposedChanges.from_wire(proposed_wire),
                    decided_by_id=actor_id,
                    workflow_id=workflow_id,
                )

            if settings.AUDIT_DECISIONS:
                AuditService.log(
                    db,
                    action=AuditAction.APPROVE if decision == Decision.APPROVED else AuditAction.REJECT,
                    entity_type=ENTITY_TYPE,
                    entity_id=workflow_id,
                    actor_id=actor_id,
                    changes=proposed_wire if decision == Decision.APPROVED else None,
                    metadata={
                        "workflow_type": workflow_type.value,
                        "property_id": property_id,
                        "fields_applied": applied,
                        "reason": reason,
                    },
                    commit=False,
                )
            db.commit()
        except LandRecordsError:
            db.rollback()
            raise
        except (SQLAlchemyError, ValidationError):
            db.rollback()
            logger.exception(
                "Decision %s on workflow %s by user %s failed", decision.value, workflow_id, actor_id,
            )
            raise TransactionFailureError()
        except (TypeError, ValueError) as e:
            db.rollback()
            logger.warning("Workflow %s holds a value that cannot be applied: %s", workflow_id, e)
            raise InvalidArgumentError("Proposed changes cannot be applied to the record")

        db.refresh(workflow)
        logger.info(
            "Workflow %s %s by user %s (%d field(s) applied)",
            workflow_id, new_status.value, actor_id, applied,
        )
        return workflow

    @staticmethod
    def approve(db: Session, workflow_id: int, actor_id: int) -> ApprovalWorkflow:
        return ApprovalService.decide(db, workflow_id, actor_id, Decision.APPROVED)

    @staticmethod
    def reject(db: Session, workflow_id: int, actor_id: int, reason: Optional[str]) -> ApprovalWorkflow:
        return ApprovalService.decide(db, workflow_id, actor_id, Decision.REJECTED, reason)

    @staticmethod
    def cancel(db: Session, workflow_id: int, actor_id: int) -> ApprovalWorkflow:
        """Withdraw a PENDING request.

        Only the initiator or a privileged actor may cancel.
        """
        workflow = db.get(ApprovalWorkflow, workflow_id)
        if workflow is None:
            raise NotFoundError(f"Approval request {workflow_id} not found")
        actor = _load_actor(db, actor_id)
        if workflow.initiated_by_id != actor_id and not is_privileged(actor.role):
            raise ForbiddenError()
        if workflow.is_terminal:
            raise ConflictError(ALREADY_PROCESSED)

        now = _utcnow()
        try:
            result = db.execute(
                update(ApprovalWorkflow)
                .where(
                    ApprovalWorkflow.id == workflow_id,
                    ApprovalWorkflow.status == ApprovalStatus.PENDING,
                )
                .values(status=ApprovalStatus.CANCELLED, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConflictError(ALREADY_PROCESSED)
            if settings.AUDIT_DECISIONS:
                AuditService.log(
                    db,
                    action=AuditAction.UPDATE,
                    entity_type=ENTITY_TYPE,
                    entity_id=workflow_id,
                    actor_id=actor_id,
                    changes={"status": {"oldValue": "PENDING", "newValue": "CANCELLED"}},
                    commit=False,
                )
            db.commit()
        except LandRecordsError:
            db.rollback()
            raise
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Cancel of workflow %s by user %s failed", workflow_id, actor_id)
            raise TransactionFailureError()

        db.refresh(workflow)
        logger.info("Workflow %s cancelled by user %s", workflow_id, actor_id)
        return workflow

    @staticmethod
    def expire_stale(
        db: Session,
        as_of: Optional[datetime] = None,
        max_age_hours: Optional[int] = None,
    ) -> List[int]:
        """Expire every PENDING request created before ``as_of - max_age_hours``.

        Returns the ids that were actually expired. A non-positive age
        disables the sweep.
        """
        hours = settings.APPROVAL_EXPIRY_HOURS if max_age_hours is None else max_age_hours
        if hours <= 0:
            return []
        as_of = as_of or _utcnow()
        cutoff = as_of - timedelta(hours=hours)

        candidates = [
            wid for (wid,) in db.query(ApprovalWorkflow.id)
            .filter(
                ApprovalWorkflow.status == ApprovalStatus.PENDING,
                ApprovalWorkflow.created_at < cutoff,
            )
            .order_by(ApprovalWorkflow.id)
            .all()
        ]
        if not candidates:
            return []

        try:
            result = db.execute(
                update(ApprovalWorkflow)
                .where(
                    ApprovalWorkflow.id.in_(candidates),
                    ApprovalWorkflow.status == ApprovalStatus.PENDING,
                )
                .values(status=ApprovalStatus.EXPIRED, updated_at=as_of)
                .execution_options(synchronize_session=False)
            )
            expired = candidates
            if result.rowcount != len(candidates):
                # someone decided a candidate between the select and the update
                expired = [
                    wid for (wid,) in db.query(ApprovalWorkflow.id)
                    .filter(
                        ApprovalWorkflow.id.in_(candidates),
                        ApprovalWorkflow.status == ApprovalStatus.EXPIRED,
                    )
                    .order_by(ApprovalWorkflow.id)
                    .all()
                ]
            if settings.AUDIT_DECISIONS and expired:
                AuditService.log(
                    db,
                    action=AuditAction.BULK_UPDATE,
                    entity_type=ENTITY_TYPE,
                    changes={"status": {"oldValue": "PENDING", "newValue": "EXPIRED"}},
                    metadata={"expired_ids": expired, "cutoff": cutoff.isoformat()},
                    commit=False,
                )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Expiry sweep failed (cutoff %s)", cutoff.isoformat())
            raise TransactionFailureError()

        db.expire_all()
        logger.info("Expired %d pending request(s) older than %s", len(expired), cutoff.isoformat())
        return expired

    @staticmethod
    def get_workflow(db: Session, workflow_id: int) -> ApprovalWorkflow:
        workflow = db.get(ApprovalWorkflow, workflow_id)
        if workflow is None:
            raise NotFoundError(f"Approval request {workflow_id} not found")
        return workflow

    @staticmethod
    def list_pending(
        db: Session, workflow_type: Optional[Union[WorkflowType, str]] = None
    ) -> List[ApprovalWorkflow]:
        """Review queue: highest priority first, oldest first within a tier."""
        query = db.query(ApprovalWorkflow).filter(ApprovalWorkflow.status == ApprovalStatus.PENDING)
        if workflow_type:
            query = query.filter(
                ApprovalWorkflow.workflow_type == _parse_enum(WorkflowType, workflow_type, "workflow type")
            )
        return query.order_by(
            priority_rank.desc(), ApprovalWorkflow.created_at.asc(), ApprovalWorkflow.id.asc()
        ).all()

    @staticmethod
    def list_by_initiator(db: Session, actor_id: int) -> List[ApprovalWorkflow]:
        """Requests one actor raised, newest first within a priority tier."""
        return (
            db.query(ApprovalWorkflow)
            .filter(ApprovalWorkflow.initiated_by_id == actor_id)
            .order_by(priority_rank.desc(), ApprovalWorkflow.created_at.desc(), ApprovalWorkflow.id.desc())
            .all()
        )

    @staticmethod
    def list_all(
        db: Session,
        status: Optional[Union[ApprovalStatus, str]] = None,
        workflow_type: Optional[Union[WorkflowType, str]] = None,
        property_id: Optional[int] = None,
    ) -> List[ApprovalWorkflow]:
        query = db.query(ApprovalWorkflow)
        if status:
            query = query.filter(ApprovalWorkflow.status == _parse_enum(ApprovalStatus, status, "status"))
        if workflow_type:
            query = query.filter(
                ApprovalWorkflow.workflow_type == _parse_enum(WorkflowType, workflow_type, "workflow type")
            )
        if property_id:
            query = query.filter(ApprovalWorkflow.property_id == property_id)
        return query.order_by(
            priority_rank.desc(), ApprovalWorkflow.created_at.desc(), ApprovalWorkflow.id.desc()
        ).all()

    @staticmethod
    def get_status_counts(db: Session, actor_id: Optional[int] = None) -> Dict[str, int]:
        """Per-status counts plus ``total``. Advisory: zeros on store error."""
        counts = {status.value: 0 for status in ApprovalStatus}
        try:
            query = db.query(ApprovalWorkflow.status, func.count(ApprovalWorkflow.id))
            if actor_id is not None:
                query = query.filter(ApprovalWorkflow.initiated_by_id == actor_id)
            for status, count in query.group_by(ApprovalWorkflow.status).all():
                counts[ApprovalStatus(status).value] = count
        except SQLAlchemyError:
            logger.warning("Status counts unavailable", exc_info=True)
            db.rollback()
            counts = {status.value: 0 for status in ApprovalStatus}
        counts["total"] = sum(counts.values())
        return counts

    @staticmethod
    def get_approval_stats(db: Session, as_of: Optional[datetime] = None) -> Dict[str, int]:
        """Pending queue size and today's decisions."""
        as_of = as_of or _utcnow()
        start_of_day = datetime.combine(as_of.date(), datetime.min.time())
        try:
            pending = (
                db.query(func.count(ApprovalWorkflow.id))
                .filter(ApprovalWorkflow.status == ApprovalStatus.PENDING)
                .scalar()
            )
            approved_today = (
                db.query(func.count(ApprovalWorkflow.id))
                .filter(
                    ApprovalWorkflow.status == ApprovalStatus.APPROVED,
                    ApprovalWorkflow.approved_at >= start_of_day,
                )
                .scalar()
            )
            rejected_today = (
                db.query(func.count(ApprovalWorkflow.id))
                .filter(
                    ApprovalWorkflow.status == ApprovalStatus.REJECTED,
                    ApprovalWorkflow.approved_at >= start_of_day,
                )
                .scalar()
            )
        except SQLAlchemyError:
            logger.warning("Approval stats unavailable", exc_info=True)
            db.rollback()
            pending = approved_today = rejected_today = 0
        return {
            "pending": pending or 0,
            "approved_today": approved_today or 0,
            "rejected_today": rejected_today or 0,
        }


approval_service = ApprovalService()
