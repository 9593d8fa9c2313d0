"""
Admin API Endpoints.

Dashboard counters, user listing and the audit trail (admin-only).
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.schemas.admin import (
    AdminStats, UserListResponse, UserListItem, AuditTrailResponse, AuditLogResponse
)
from backend.app.schemas.auth import Principal
from backend.app.core.guards import require_admin
from backend.app.services.analytics import AnalyticsService
from backend.app.services.audit import get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/stats", response_model=AdminStats)
async def get_admin_stats(
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Dashboard counters: total requests, registered drivers, requests
    awaiting assignment and requests completed today (UTC).
    """
    return await AnalyticsService.get_admin_stats(db)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List users (admin-only), newest first.
    """
    count_query = select(func.count(User.id))
    query = select(User)
    if role:
        count_query = count_query.where(User.role == role)
        query = query.where(User.role == role)

    total = (await db.execute(count_query)).scalar()

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(page_size)
    )
    users = result.scalars().all()

    return UserListResponse(
        users=[UserListItem.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    entity_type: Optional[str] = Query(None, description="e.g. transport_request, bid, user"),
    entity_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Get audit trail with optional filtering (admin-only), most recent first.
    """
    logs = await get_audit_trail(
        db=db,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        limit=limit
    )

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
