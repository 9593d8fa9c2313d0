"""
Analytics Service.

Read-only aggregates for the admin dashboard.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from backend.app.core.timeutils import utc_now
from backend.app.models.transport_request import TransportRequest
from backend.app.models.request_enums import RequestStatus
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.schemas.admin import AdminStats


class AnalyticsService:

    @staticmethod
    async def get_admin_stats(db: AsyncSession, now: Optional[datetime] = None) -> AdminStats:
        """
        Dashboard counters.

        completed_today counts COMPLETED requests last updated within the
        current UTC day [00:00, next 00:00).
        """
        now = now or utc_now()
        day_start = datetime.combine(now.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc)
        day_end = day_start + timedelta(days=1)

        total_requests = (await db.execute(
            select(func.count(TransportRequest.id))
        )).scalar() or 0

        active_drivers = (await db.execute(
            select(func.count(User.id)).where(User.role == UserRole.DRIVER)
        )).scalar() or 0

        pending_approval = (await db.execute(
            select(func.count(TransportRequest.id)).where(
                TransportRequest.status == RequestStatus.PENDING
            )
        )).scalar() or 0

        completed_today = (await db.execute(
            select(func.count(TransportRequest.id)).where(
                TransportRequest.status == RequestStatus.COMPLETED,
                TransportRequest.updated_at >= day_start,
                TransportRequest.updated_at < day_end
            )
        )).scalar() or 0

        return AdminStats(
            total_requests=total_requests,
            active_drivers=active_drivers,
            pending_approval=pending_approval,
            completed_today=completed_today
        )
