"""Property record, the target entity patched by approved workflows."""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Float, ForeignKey, func
from landrecords.db.base import Base


class Property(Base):
    """Registered land title."""
    __tablename__ = "properties"

    # Columns a workflow may never patch
    PROTECTED_FIELDS = frozenset({
        "id", "created_by_id", "updated_by_id", "created_at", "updated_at",
    })

    id = Column(Integer, primary_key=True, autoincrement=True)
    title_number = Column(String(100), unique=True, nullable=False, index=True)
    registered_owner = Column(String(255), nullable=False)
    lot_number = Column(String(100), nullable=True)
    survey_number = Column(String(100), nullable=True)
    lot_area = Column(Float, nullable=True)  # square meters
    location = Column(String(255), nullable=True)
    barangay = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    classification = Column(String(50), nullable=True)  # residential, agricultural, ...
    status = Column(String(50), nullable=False, default="ACTIVE")
    encumbrances = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    @classmethod
    def patchable_fields(cls) -> set:
        return {c.key for c in cls.__table__.columns} - cls.PROTECTED_FIELDS
