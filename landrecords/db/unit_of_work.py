"""Unit of work handed to change appliers.

The decision path opens the transaction and passes a ``UnitOfWork`` down.
Appliers only see the operations below, never the session itself, so they
cannot commit, roll back or reach unrelated tables.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, DateTime, Float, Integer
from sqlalchemy.orm import Session

from landrecords.core.exceptions import InvalidArgumentError, NotFoundError
from landrecords.models.change_history import ChangeHistory, ChangeType
from landrecords.models.property import Property


class UnitOfWork(ABC):
    """Repository operations available inside a decision transaction."""

    @abstractmethod
    def load_entity(self, entity_id: int) -> Any:
        """Return the target entity or raise ``NotFoundError``."""
        ...

    @abstractmethod
    def update_entity(self, entity_id: int, values: Dict[str, Any], updated_by_id: int) -> Any:
        """Apply all ``values`` to the target entity in one write."""
        ...

    @abstractmethod
    def add_change_history(
        self,
        entity_id: int,
        field_name: str,
        old_value: Optional[str],
        new_value: Optional[str],
        change_type: ChangeType,
        changed_by_id: int,
        reason: Optional[str] = None,
    ) -> ChangeHistory:
        """Insert one change-history row."""
        ...


_TRUE = ("true", "1", "yes")
_FALSE = ("false", "0", "no")


def coerce_column_value(column, value: Any) -> Any:
    """Convert a JSON-decoded diff value to the column's Python type.

    Raises:
        InvalidArgumentError: ``None`` or a blank string for a NOT NULL
            column, or a value the column type cannot hold.
    """
    blank = value is None or (isinstance(value, str) and not value.strip())
    if blank and not column.nullable:
        raise InvalidArgumentError(f"{column.key} cannot be empty")
    if value is None:
        return None
    col_type = column.type
    try:
        if isinstance(col_type, Boolean):
            if isinstance(value, bool):
                return value
            lowered = str(value).strip().lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValueError(value)
        if isinstance(col_type, DateTime) and isinstance(value, str):
            return datetime.fromisoformat(value)
        if isinstance(col_type, Float) and isinstance(value, (int, str)):
            return float(value)
        if isinstance(col_type, Integer) and isinstance(value, str):
            return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"Invalid value for {column.key}: {value!r}")
    return value


class SqlAlchemyUnitOfWork(UnitOfWork):
    """``UnitOfWork`` over an open session targeting ``Property`` rows.

    Writes are flushed, never committed; the caller owns the transaction.
    """

    model = Property

    def __init__(self, db: Session):
        self._db = db

    def load_entity(self, entity_id: int) -> Property:
        entity = self._db.get(self.model, entity_id)
        if entity is None:
            raise NotFoundError(f"{self.model.__name__} {entity_id} not found")
        return entity

    def update_entity(self, entity_id: int, values: Dict[str, Any], updated_by_id: int) -> Property:
        entity = self.load_entity(entity_id)
        columns = self.model.__table__.columns
        allowed = self.model.patchable_fields()
        unknown = sorted(set(values) - allowed)
        if unknown:
            raise InvalidArgumentError(f"Unknown or protected fields: {', '.join(unknown)}")

        for field, value in values.items():
            setattr(entity, field, coerce_column_value(columns[field], value))
        entity.updated_by_id = updated_by_id
        self._db.flush()
        return entity

    def add_change_history(
        self,
        entity_id: int,
        field_name: str,
        old_value: Optional[str],
        new_value: Optional[str],
        change_type: ChangeType,
        changed_by_id: int,
        reason: Optional[str] = None,
    ) -> ChangeHistory:
        row = ChangeHistory(
            property_id=entity_id,
            field_name=field_name,
            old_value=old_value,
            new_value=new_value,
            change_type=change_type,
            changed_by_id=changed_by_id,
            reason=reason,
        )
        self._db.add(row)
        self._db.flush()
        return row
