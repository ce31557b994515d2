"""ORM guards for append-only tables.

AuditLog and ChangeHistory rows are written once and never touched again.
The listeners below turn any attempted UPDATE or DELETE through the ORM into
an ``ImmutableRecordError`` so the surrounding transaction rolls back.
"""

import logging

from sqlalchemy import event

from landrecords.core.exceptions import ImmutableRecordError
from landrecords.models.audit_log import AuditLog
from landrecords.models.change_history import ChangeHistory

logger = logging.getLogger("landrecords.db")

APPEND_ONLY_MODELS = (AuditLog, ChangeHistory)


def _block(operation: str):
    def listener(mapper, connection, target):
        entity = type(target).__name__
        logger.error("Blocked %s on append-only %s id=%s", operation, entity, target.id)
        raise ImmutableRecordError(f"{entity} records cannot be {operation.lower()}d")
    return listener


_block_update = _block("UPDATE")
_block_delete = _block("DELETE")


def register_immutability_listeners() -> None:
    """Attach the guards; safe to call more than once."""
    for model in APPEND_ONLY_MODELS:
        if not event.contains(model, "before_update", _block_update):
            event.listen(model, "before_update", _block_update)
        if not event.contains(model, "before_delete", _block_delete):
            event.listen(model, "before_delete", _block_delete)


def unregister_immutability_listeners() -> None:
    for model in APPEND_ONLY_MODELS:
        if event.contains(model, "before_update", _block_update):
            event.remove(model, "before_update", _block_update)
        if event.contains(model, "before_delete", _block_delete):
            event.remove(model, "before_delete", _block_delete)
