"""
Admin and directory schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional
from backend.app.models.enums import UserRole


class AdminStats(BaseModel):
    """Dashboard counters."""
    total_requests: int
    active_drivers: int
    pending_approval: int
    completed_today: int


class UserListItem(BaseModel):
    """User row in the admin listing."""
    id: int
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    role: UserRole
    created_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Paginated user list."""
    users: List[UserListItem]
    total: int
    page: int
    page_size: int


class DriverProfile(BaseModel):
    """Public driver card shown next to a bid."""
    id: int
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogResponse(BaseModel):
    """Schema for audit log entry."""
    id: int
    actor_id: Optional[int]
    actor_email: Optional[str]
    action: str
    entity_type: Optional[str]
    entity_id: Optional[int]
    meta_data: Optional[dict]
    ip_address: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    """Schema for audit trail list."""
    logs: List[AuditLogResponse]
    total: int
