"""Approval workflow model and its closed enums."""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Enum, JSON, case, func
from sqlalchemy.orm import relationship
from landrecords.db.base import Base
import enum


class WorkflowType(str, enum.Enum):
    PROPERTY_UPDATE = "PROPERTY_UPDATE"
    TITLE_TRANSFER = "TITLE_TRANSFER"
    STATUS_CHANGE = "STATUS_CHANGE"
    OWNER_CHANGE = "OWNER_CHANGE"
    ENCUMBRANCE_UPDATE = "ENCUMBRANCE_UPDATE"
    LOCATION_UPDATE = "LOCATION_UPDATE"
    DELETION = "DELETION"
    RESTORATION = "RESTORATION"


class Priority(str, enum.Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ApprovalStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class Decision(str, enum.Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


PRIORITY_RANK = {
    Priority.LOW.value: 0,
    Priority.NORMAL.value: 1,
    Priority.HIGH.value: 2,
    Priority.URGENT.value: 3,
}


class ApprovalWorkflow(Base):
    """Single-approver change request against a property.

    ``proposed_changes`` holds the wire shape
    ``{field: {"oldValue": ..., "newValue": ..., "fieldName": ...}}``.
    Once status leaves PENDING the row is terminal.
    """
    __tablename__ = "approval_workflows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    workflow_type = Column(Enum(WorkflowType), nullable=False, index=True)
    description = Column(Text, nullable=False)
    priority = Column(Enum(Priority), default=Priority.NORMAL, nullable=False)
    status = Column(Enum(ApprovalStatus), default=ApprovalStatus.PENDING, nullable=False, index=True)
    proposed_changes = Column(JSON, nullable=False, default=dict)
    initiated_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)  # decision time, set for rejections too
    rejected_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_terminal(self) -> bool:
        return self.status != ApprovalStatus.PENDING

    target_property = relationship("Property", lazy="joined")
    initiated_by = relationship("User", foreign_keys=[initiated_by_id], lazy="joined")
    approved_by = relationship("User", foreign_keys=[approved_by_id], lazy="joined")


# SQL expression ranking URGENT highest; enum names sort alphabetically otherwise.
priority_rank = case(PRIORITY_RANK, value=ApprovalWorkflow.priority, else_=0)
