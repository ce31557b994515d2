"""Property service: reads and review-gated change requests on properties."""

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from landrecords.core.changes import FieldChange, ProposedChanges, humanize_field, values_are_equal
from landrecords.core.exceptions import (
    ConflictError, InvalidArgumentError, NotFoundError, TransactionFailureError,
)
from landrecords.models.approval import ApprovalWorkflow, Priority, WorkflowType
from landrecords.models.audit_log import AuditAction
from landrecords.models.property import Property
from landrecords.services.approval_service import ApprovalService
from landrecords.services.audit_service import AuditService

logger = logging.getLogger("landrecords.properties")


def build_proposed_changes(entity: Property, updates: Dict[str, Any]) -> ProposedChanges:
    """Diff ``updates`` against the current record.

    Only fields whose value actually changes are included.

    Raises:
        InvalidArgumentError: unknown or protected field, or a value outside
            the supported scalar types.
    """
    allowed = type(entity).patchable_fields()
    unknown = sorted(set(updates) - allowed)
    if unknown:
        raise InvalidArgumentError(f"Unknown or protected fields: {', '.join(unknown)}")

    changes: Dict[str, FieldChange] = {}
    for field_name in sorted(updates):
        new_value = updates[field_name]
        if isinstance(new_value, str):
            new_value = new_value.strip()
        old_value = getattr(entity, field_name)
        if values_are_equal(old_value, new_value):
            continue
        try:
            changes[field_name] = FieldChange(
                old_value=old_value,
                new_value=new_value,
                field_name=humanize_field(field_name),
            )
        except ValidationError:
            raise InvalidArgumentError(f"Unsupported value for {field_name}")
    return ProposedChanges(changes)


class PropertyService:
    """Property lookups and the requests that route edits through approval."""

    @staticmethod
    def get_property(db: Session, property_id: int) -> Property:
        prop = db.get(Property, property_id)
        if prop is None:
            raise NotFoundError(f"Property {property_id} not found")
        return prop

    @staticmethod
    def list_properties(
        db: Session,
        search: Optional[str] = None,
        include_deleted: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        query = db.query(Property)
        if not include_deleted:
            query = query.filter(Property.is_deleted.is_(False))
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Property.title_number.ilike(pattern),
                    Property.registered_owner.ilike(pattern),
                    Property.lot_number.ilike(pattern),
                    Property.city.ilike(pattern),
                )
            )
        total = query.count()
        items = (
            query.order_by(Property.title_number)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"items": items, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def create_property(db: Session, values: Dict[str, Any], created_by_id: int) -> Property:
        """Register a new title directly. Only later edits go through review."""
        unknown = sorted(set(values) - Property.patchable_fields())
        if unknown:
            raise InvalidArgumentError(f"Unknown or protected fields: {', '.join(unknown)}")
        title_number = (values.get("title_number") or "").strip()
        if not title_number or not (values.get("registered_owner") or "").strip():
            raise InvalidArgumentError("Title number and registered owner are required")
        if db.query(Property).filter(Property.title_number == title_number).first():
            raise ConflictError(f"Title number {title_number} already exists")

        prop = Property(**{**values, "title_number": title_number})
        prop.created_by_id = created_by_id
        prop.updated_by_id = created_by_id
        try:
            db.add(prop)
            db.flush()
            AuditService.log(
                db,
                action=AuditAction.CREATE,
                entity_type="Property",
                entity_id=prop.id,
                actor_id=created_by_id,
                changes={"title_number": title_number},
                commit=False,
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError(f"Title number {title_number} already exists")
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to create property %s", title_number)
            raise TransactionFailureError()
        db.refresh(prop)
        return prop

    @staticmethod
    def request_property_update(
        db: Session,
        property_id: int,
        updates: Dict[str, Any],
        initiator_id: int,
        priority: Union[Priority, str] = Priority.NORMAL,
        workflow_type: Union[WorkflowType, str] = WorkflowType.PROPERTY_UPDATE,
    ) -> ApprovalWorkflow:
        """Open a review request for the fields of ``updates`` that differ."""
        prop = PropertyService.get_property(db, property_id)
        proposed = build_proposed_changes(prop, updates)
        if len(proposed) == 0:
            raise InvalidArgumentError("No changes detected")

        if "title_number" in proposed.keys():
            new_title = proposed.root["title_number"].new_value
            clash = (
                db.query(Property)
                .filter(Property.title_number == new_title, Property.id != property_id)
                .first()
            )
            if clash:
                raise ConflictError(f"Title number {new_title} already exists")

        fields = list(proposed.keys())
        description = f"Update {len(fields)} field(s): {', '.join(fields)}"
        return ApprovalService.create_request(
            db,
            property_id=property_id,
            workflow_type=workflow_type,
            description=description,
            initiator_id=initiator_id,
            proposed_changes=proposed,
            priority=priority,
        )

    @staticmethod
    def request_deletion(
        db: Session,
        property_id: int,
        initiator_id: int,
        reason: Optional[str] = None,
        priority: Union[Priority, str] = Priority.NORMAL,
    ) -> ApprovalWorkflow:
        """Ask for a soft delete (``is_deleted`` -> True)."""
        prop = PropertyService.get_property(db, property_id)
        if prop.is_deleted:
            raise ConflictError(f"Property {prop.title_number} is already deleted")
        proposed = ProposedChanges({
            "is_deleted": FieldChange(old_value=False, new_value=True, field_name="Is Deleted"),
        })
        description = f"Delete property {prop.title_number}"
        if reason and reason.strip():
            description = f"{description}: {reason.strip()}"
        return ApprovalService.create_request(
            db,
            property_id=property_id,
            workflow_type=WorkflowType.DELETION,
            description=description,
            initiator_id=initiator_id,
            proposed_changes=proposed,
            priority=priority,
        )

    @staticmethod
    def request_restoration(
        db: Session,
        property_id: int,
        initiator_id: int,
        reason: Optional[str] = None,
        priority: Union[Priority, str] = Priority.NORMAL,
    ) -> ApprovalWorkflow:
        """Ask to undo a soft delete (``is_deleted`` -> False)."""
        prop = PropertyService.get_property(db, property_id)
        if not prop.is_deleted:
            raise ConflictError(f"Property {prop.title_number} is not deleted")
        proposed = ProposedChanges({
            "is_deleted": FieldChange(old_value=True, new_value=False, field_name="Is Deleted"),
        })
        description = f"Restore property {prop.title_number}"
        if reason and reason.strip():
            description = f"{description}: {reason.strip()}"
        return ApprovalService.create_request(
            db,
            property_id=property_id,
            workflow_type=WorkflowType.RESTORATION,
            description=description,
            initiator_id=initiator_id,
            proposed_changes=proposed,
            priority=priority,
        )


property_service = PropertyService()
