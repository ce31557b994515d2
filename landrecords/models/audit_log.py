"""Audit log model: append-only."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, JSON, func
from landrecords.db.base import Base
import enum


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    EXPORT = "EXPORT"
    IMPORT = "IMPORT"
    RESTORE = "RESTORE"
    BULK_UPDATE = "BULK_UPDATE"


class AuditLog(Base):
    """Immutable audit trail for security and business relevant actions.

    This table is APPEND-ONLY: no UPDATE or DELETE operations are ever
    performed on it (enforced by ORM listeners in ``landrecords.db.immutability``).
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(Enum(AuditAction), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False, index=True)  # Property, Role, User, ApprovalWorkflow
    entity_id = Column(String(100), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    changes = Column(JSON, nullable=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
