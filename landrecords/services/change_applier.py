"""Change applier: turns an approved diff into entity writes and history rows."""

from typing import Dict

from landrecords.core.changes import ProposedChanges, stringify_value
from landrecords.db.unit_of_work import UnitOfWork
from landrecords.models.approval import WorkflowType
from landrecords.models.change_history import ChangeType


class ChangeApplier:
    """Applies a ``ProposedChanges`` map through a ``UnitOfWork``.

    Runs inside the decision transaction: one history row per key, then a
    single update merging every ``new_value``. Nothing is committed here.
    """

    def __init__(self, change_type: ChangeType = ChangeType.UPDATE, label: str = "Property update"):
        self.change_type = change_type
        self.label = label

    def apply(
        self,
        uow: UnitOfWork,
        entity_id: int,
        proposed: ProposedChanges,
        decided_by_id: int,
        workflow_id: int,
    ) -> int:
        """Apply the diff and return the number of history rows written."""
        uow.load_entity(entity_id)
        reason = f"{self.label} approved via workflow {workflow_id}"

        update_values = {}
        for field_name, change in proposed:
            uow.add_change_history(
                entity_id=entity_id,
                field_name=field_name,
                old_value=stringify_value(change.old_value),
                new_value=stringify_value(change.new_value),
                change_type=self.change_type,
                changed_by_id=decided_by_id,
                reason=reason,
            )
            update_values[field_name] = change.new_value

        if update_values:
            uow.update_entity(entity_id, update_values, decided_by_id)
        return len(update_values)


CHANGE_APPLIERS: Dict[WorkflowType, ChangeApplier] = {
    WorkflowType.PROPERTY_UPDATE: ChangeApplier(ChangeType.UPDATE, "Property update"),
    WorkflowType.TITLE_TRANSFER: ChangeApplier(ChangeType.UPDATE, "Title transfer"),
    WorkflowType.STATUS_CHANGE: ChangeApplier(ChangeType.UPDATE, "Status change"),
    WorkflowType.OWNER_CHANGE: ChangeApplier(ChangeType.UPDATE, "Owner change"),
    WorkflowType.ENCUMBRANCE_UPDATE: ChangeApplier(ChangeType.UPDATE, "Encumbrance update"),
    WorkflowType.LOCATION_UPDATE: ChangeApplier(ChangeType.UPDATE, "Location update"),
    WorkflowType.DELETION: ChangeApplier(ChangeType.DELETE, "Deletion"),
    WorkflowType.RESTORATION: ChangeApplier(ChangeType.RESTORE, "Restoration"),
}


def get_applier(workflow_type: WorkflowType) -> ChangeApplier:
    return CHANGE_APPLIERS[WorkflowType(workflow_type)]
