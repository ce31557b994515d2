"""Models package: import all models so metadata is complete."""

from landrecords.models.permission import Permission, RolePermission
from landrecords.models.role import Role
from landrecords.models.user import User
from landrecords.models.property import Property
from landrecords.models.approval import (
    ApprovalWorkflow, ApprovalStatus, WorkflowType, Priority, Decision,
)
from landrecords.models.change_history import ChangeHistory, ChangeType
from landrecords.models.audit_log import AuditLog, AuditAction

__all__ = [
    "Permission", "RolePermission", "Role", "User", "Property",
    "ApprovalWorkflow", "ApprovalStatus", "WorkflowType", "Priority", "Decision",
    "ChangeHistory", "ChangeType", "AuditLog", "AuditAction",
]
