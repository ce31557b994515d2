"""Per-field change history written by approved workflows."""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, func
from sqlalchemy.orm import relationship
from landrecords.db.base import Base
import enum


class ChangeType(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    RESTORE = "RESTORE"


class ChangeHistory(Base):
    """One row per changed field per applied workflow.

    APPEND-ONLY: rows are created by the change applier and never edited or
    deleted (enforced by ORM listeners in ``landrecords.db.immutability``).
    """
    __tablename__ = "change_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    field_name = Column(String(100), nullable=False, index=True)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    change_type = Column(Enum(ChangeType), nullable=False, default=ChangeType.UPDATE)
    changed_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    changed_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
    reason = Column(String(500), nullable=True)

    changed_by = relationship("User", lazy="joined")
