"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from landrecords.models.approval import ApprovalStatus, Priority, WorkflowType
from landrecords.models.audit_log import AuditAction
from landrecords.models.change_history import ChangeType


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=4)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[Dict[str, Any]] = None

class MeResponse(BaseModel):
    id: int
    email: str
    full_name: str
    role: Optional[str] = None
    privileged: bool = False
    permissions: Dict[str, List[str]] = {}


# ---- Permission / Role ----
class PermissionOut(BaseModel):
    id: int
    name: str
    module: str
    action: str
    description: Optional[str] = None

    class Config:
        from_attributes = True

class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    permission_ids: List[int] = Field(default_factory=list)

class RoleUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: bool = True
    permission_ids: List[int] = Field(default_factory=list)

class RoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_system: bool
    is_active: bool
    bypass_all_checks: bool = False
    permissions: List[PermissionOut] = []
    user_count: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("permissions", mode="before")
    @classmethod
    def _unwrap_assignments(cls, v):
        # Role.permissions holds RolePermission join rows
        return [getattr(item, "permission", item) for item in (v or [])]

class RoleStats(BaseModel):
    total_roles: int = 0
    active_roles: int = 0
    inactive_roles: int = 0
    system_roles: int = 0
    total_users: int = 0
    total_permissions: int = 0


# ---- User ----
class UserCreate(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    role_id: int
    department: Optional[str] = None
    position: Optional[str] = None

class UserUpdateRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    role_id: Optional[int] = None
    is_active: Optional[bool] = None

class UserOut(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    department: Optional[str] = None
    position: Optional[str] = None
    role_id: int
    role: Optional[str] = None
    is_active: bool = True
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("role", mode="before")
    @classmethod
    def _role_name(cls, v):
        return getattr(v, "name", v)


# ---- Property ----
class PropertyCreate(BaseModel):
    title_number: str = Field(..., min_length=1)
    registered_owner: str = Field(..., min_length=1)
    lot_number: Optional[str] = None
    survey_number: Optional[str] = None
    lot_area: Optional[float] = None
    location: Optional[str] = None
    barangay: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    classification: Optional[str] = None
    status: str = "ACTIVE"
    encumbrances: Optional[str] = None
    remarks: Optional[str] = None

class PropertyOut(PropertyCreate):
    id: int
    is_deleted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class PropertyListResponse(BaseModel):
    items: List[PropertyOut]
    total: int
    page: int
    page_size: int

class PropertyUpdateRequest(BaseModel):
    updates: Dict[str, Any] = Field(..., min_length=1)
    priority: Priority = Priority.NORMAL
    workflow_type: WorkflowType = WorkflowType.PROPERTY_UPDATE

class LifecycleRequest(BaseModel):
    reason: Optional[str] = None
    priority: Priority = Priority.NORMAL


# ---- Approval ----
class ApprovalOut(BaseModel):
    id: int
    property_id: int
    workflow_type: WorkflowType
    description: str
    priority: Priority
    status: ApprovalStatus
    proposed_changes: Dict[str, Any]
    initiated_by_id: int
    approved_by_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RejectRequest(BaseModel):
    reason: str = ""

class ExpireRequest(BaseModel):
    max_age_hours: Optional[int] = Field(None, ge=0)

class ApprovalStats(BaseModel):
    pending: int = 0
    approved_today: int = 0
    rejected_today: int = 0


# ---- History / Audit ----
class ChangeHistoryOut(BaseModel):
    id: int
    property_id: int
    field_name: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    change_type: ChangeType
    changed_by_id: int
    changed_at: Optional[datetime] = None
    reason: Optional[str] = None

    class Config:
        from_attributes = True

class ChangeHistoryPage(BaseModel):
    items: List[ChangeHistoryOut]
    total: int
    total_pages: int
    page: int
    page_size: int

class AuditLogOut(BaseModel):
    id: int
    action: AuditAction
    entity_type: str
    entity_id: Optional[str] = None
    user_id: Optional[int] = None
    changes: Optional[Any] = None
    metadata: Optional[Any] = Field(None, validation_alias="metadata_json")
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AuditLogPage(BaseModel):
    logs: List[AuditLogOut]
    total: int
    total_pages: int
    page: int
    page_size: int


# ---- Common ----
class MessageResponse(BaseModel):
    message: str
    detail: Optional[str] = None
