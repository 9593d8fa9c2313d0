"""
GPS ingestion and read fallback for live tracking.

A sample is committed before it is broadcast, so subscribers never see a
position that is not in the history.
"""

import logging
from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from backend.app.core.exceptions import ForbiddenError, NotFoundError
from backend.app.core.guards import access_policy
from backend.app.core.timeutils import ensure_utc
from backend.app.models.gps_tracking import GpsTracking
from backend.app.models.request_enums import RequestStatus
from backend.app.models.transport_request import TransportRequest
from backend.app.schemas.auth import Principal
from backend.app.schemas.gps_tracking import GpsSampleCreate, LocationUpdateMessage
from backend.app.services.bidding import load_request
from backend.app.services.tracking_hub import LocationBroadcastHub

logger = logging.getLogger(__name__)

# Statuses during which the assigned driver reports positions
TRACKABLE_STATUSES = frozenset({RequestStatus.ASSIGNED, RequestStatus.IN_PROGRESS})


class TrackingService:

    @staticmethod
    async def record_sample(
        db: AsyncSession,
        hub: Optional[LocationBroadcastHub],
        principal: Principal,
        data: GpsSampleCreate
    ) -> Tuple[GpsTracking, int]:
        """
        Store a driver's position and fan it out to subscribers.

        Returns:
            (stored sample, number of subscribers notified)

        Raises:
            ForbiddenError: caller is not the assigned driver, or the request
                is not ASSIGNED/IN_PROGRESS
            NotFoundError: unknown request
        """
        if not principal.is_driver:
            raise ForbiddenError("Only drivers can post GPS samples")

        request = await load_request(db, data.request_id)

        if request.assigned_driver_id != principal.id:
            raise ForbiddenError("Only the assigned driver can post GPS samples for this request")

        if request.status not in TRACKABLE_STATUSES:
            raise ForbiddenError(
                "Tracking is only accepted while a request is assigned or in progress",
                {"request_id": request.id, "status": request.status.value}
            )

        sample = GpsTracking(
            request_id=request.id,
            driver_id=principal.id,
            latitude=data.latitude,
            longitude=data.longitude,
            speed=data.speed,
            heading=data.heading,
            accuracy=data.accuracy,
            battery_level=data.battery_level,
            status=data.status
        )
        if data.timestamp is not None:
            sample.timestamp = ensure_utc(data.timestamp)

        db.add(sample)
        await db.commit()
        await db.refresh(sample)

        notified = 0
        if hub is not None:
            message = LocationUpdateMessage(
                id=sample.id,
                request_id=sample.request_id,
                driver_id=sample.driver_id,
                latitude=sample.latitude,
                longitude=sample.longitude,
                speed=sample.speed,
                heading=sample.heading,
                accuracy=sample.accuracy,
                battery_level=sample.battery_level,
                status=sample.status,
                timestamp=ensure_utc(sample.timestamp)
            )
            notified = await hub.publish(sample.request_id, message.to_wire())

        logger.info(
            "GPS sample recorded",
            extra={"request_id": sample.request_id, "tracking_id": sample.id, "notified": notified}
        )
        return sample, notified

    @staticmethod
    async def authorize_subscription(
        db: AsyncSession,
        principal: Principal,
        request_id: int
    ) -> TransportRequest:
        """Admin, owning client or assigned driver; raises otherwise."""
        request = await load_request(db, request_id)
        access_policy.enforce_track(request, principal)
        return request

    @staticmethod
    async def get_latest_for_request(
        db: AsyncSession,
        principal: Principal,
        request_id: int
    ) -> GpsTracking:
        await TrackingService.authorize_subscription(db, principal, request_id)

        result = await db.execute(
            select(GpsTracking)
            .where(GpsTracking.request_id == request_id)
            .order_by(GpsTracking.timestamp.desc(), GpsTracking.id.desc())
            .limit(1)
        )
        sample = result.scalar_one_or_none()
        if not sample:
            raise NotFoundError("GPS tracking", message=f"No GPS samples for request {request_id}")
        return sample

    @staticmethod
    async def get_history_for_request(
        db: AsyncSession,
        principal: Principal,
        request_id: int,
        limit: Optional[int] = None
    ) -> List[GpsTracking]:
        """The full sample log for a request, newest first; limit keeps only the newest N."""
        await TrackingService.authorize_subscription(db, principal, request_id)

        query = (
            select(GpsTracking)
            .where(GpsTracking.request_id == request_id)
            .order_by(GpsTracking.timestamp.desc(), GpsTracking.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await db.execute(query)
        return result.scalars().all()
