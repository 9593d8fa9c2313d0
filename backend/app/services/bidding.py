"""
Bid Resolution Engine.

Drivers bid on PENDING transport requests; an admin picks the winning
driver. Acceptance is a single transaction: the chosen bid becomes
ACCEPTED, every other bid on the request REJECTED, and the request moves
PENDING -> ASSIGNED with the driver bound. There is no automatic winner
selection.
"""

import logging
from typing import List, NoReturn, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from backend.app.core.exceptions import (
    ForbiddenError, NotFoundError, InvalidTransitionError, ValidationError
)
from backend.app.core.guards import access_policy
from backend.app.core.timeutils import ensure_utc, utc_now
from backend.app.models.bid import Bid
from backend.app.models.transport_request import TransportRequest
from backend.app.models.request_enums import RequestStatus, BidStatus
from backend.app.schemas.auth import Principal
from backend.app.schemas.bid import BidCreate
from backend.app.services.request_locks import request_locks

logger = logging.getLogger(__name__)


async def load_request(
    db: AsyncSession,
    request_id: int,
    for_update: bool = False
) -> TransportRequest:
    """
    Fetch a transport request or raise NotFoundError.

    for_update takes a row lock on databases that support it (PostgreSQL);
    SQLite ignores the clause.
    """
    query = select(TransportRequest).where(TransportRequest.id == request_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    request = result.scalar_one_or_none()

    if not request:
        raise NotFoundError("Transport request", request_id)

    return request


async def refuse(db: AsyncSession, request_id: int, message: str) -> NoReturn:
    """
    Raise ForbiddenError for an existing request, NotFoundError otherwise.

    Unknown ids are a 404 for every caller. The lookup takes no lock.
    """
    await load_request(db, request_id)
    raise ForbiddenError(message)


class BiddingService:

    @staticmethod
    async def submit_bid(db: AsyncSession, principal: Principal, data: BidCreate) -> Bid:
        """
        Place a bid on an open request (drivers only).

        Raises:
            ForbiddenError: caller is not a driver, or request is not PENDING
            NotFoundError: request does not exist
            ValidationError: non-positive amount, or estimated delivery in the
                past or not after the request's pickup date
        """
        if not principal.is_driver:
            raise ForbiddenError("Only drivers can create bids")

        if data.amount <= 0:
            raise ValidationError("Bid amount must be greater than zero", {"amount": str(data.amount)})

        # Held so an assignment can't slip in between the status check and the insert
        async with request_locks.hold(data.request_id):
            request = await load_request(db, data.request_id)

            if request.status != RequestStatus.PENDING:
                raise ForbiddenError(
                    "Transport request is no longer open for bidding",
                    {"request_id": request.id, "status": request.status.value}
                )

            estimated_delivery = ensure_utc(data.estimated_delivery)
            if estimated_delivery <= utc_now():
                raise ValidationError(
                    "Estimated delivery must be in the future",
                    {"estimated_delivery": estimated_delivery.isoformat()}
                )
            if estimated_delivery <= ensure_utc(request.pickup_date):
                raise ValidationError(
                    "Estimated delivery must be after the pickup date",
                    {"estimated_delivery": estimated_delivery.isoformat()}
                )

            bid = Bid(
                request_id=request.id,
                driver_id=principal.id,
                amount=data.amount,
                message=data.message,
                estimated_delivery=estimated_delivery,
                status=BidStatus.PENDING
            )
            db.add(bid)
            await db.commit()
            await db.refresh(bid)

        logger.info(
            "Bid submitted",
            extra={"bid_id": bid.id, "request_id": bid.request_id, "driver_id": bid.driver_id}
        )
        return bid

    @staticmethod
    async def list_bids_for_request(
        db: AsyncSession,
        principal: Principal,
        request_id: int
    ) -> List[Bid]:
        """Bids on one request, newest first. Admins and the owning client only."""
        request = await load_request(db, request_id)
        access_policy.enforce_view_bids(request, principal)

        result = await db.execute(
            select(Bid)
            .where(Bid.request_id == request_id)
            .order_by(Bid.created_at.desc(), Bid.id.asc())
        )
        return result.scalars().all()

    @staticmethod
    async def list_bids_for_driver(db: AsyncSession, principal: Principal) -> List[Bid]:
        """The calling driver's own bids, newest first."""
        if not principal.is_driver:
            raise ForbiddenError("Only drivers can view their bids")

        result = await db.execute(
            select(Bid)
            .where(Bid.driver_id == principal.id)
            .order_by(Bid.created_at.desc(), Bid.id.asc())
        )
        return result.scalars().all()

    @staticmethod
    async def _find_pending_bid(
        db: AsyncSession,
        request_id: int,
        driver_id: int
    ) -> Optional[Bid]:
        # A driver may have re-bid after a reassignment; the newest pending bid wins
        result = await db.execute(
            select(Bid)
            .where(
                Bid.request_id == request_id,
                Bid.driver_id == driver_id,
                Bid.status == BidStatus.PENDING
            )
            .order_by(Bid.created_at.desc(), Bid.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def accept_bid(
        db: AsyncSession,
        principal: Principal,
        request_id: int,
        driver_id: int
    ) -> TransportRequest:
        """
        Assign the request to driver_id by accepting their bid (admins only).

        Concurrent calls for the same request are serialized; the loser sees
        the request already ASSIGNED and gets InvalidTransitionError.

        Raises:
            ForbiddenError: caller is not an admin
            NotFoundError: unknown request, or driver has no pending bid on it
            InvalidTransitionError: request is not PENDING
        """
        if not principal.is_admin:
            await refuse(db, request_id, "Only admins can assign drivers")

        async with request_locks.hold(request_id):
            try:
                request = await load_request(db, request_id, for_update=True)

                if request.status != RequestStatus.PENDING:
                    raise InvalidTransitionError(
                        request.status.value,
                        RequestStatus.ASSIGNED.value,
                        f"Can only assign a driver to a pending request, current status: {request.status.value}"
                    )

                chosen = await BiddingService._find_pending_bid(db, request_id, driver_id)
                if not chosen:
                    raise NotFoundError(
                        "Bid",
                        message=f"No pending bid from driver {driver_id} on request {request_id}"
                    )

                # Compare-and-set guards against writers in other processes
                assigned = await db.execute(
                    update(TransportRequest)
                    .where(
                        TransportRequest.id == request_id,
                        TransportRequest.status == RequestStatus.PENDING
                    )
                    .values(status=RequestStatus.ASSIGNED, assigned_driver_id=driver_id)
                )
                if assigned.rowcount != 1:
                    raise InvalidTransitionError(
                        "assigned",
                        RequestStatus.ASSIGNED.value,
                        "Transport request was assigned concurrently"
                    )

                await db.execute(
                    update(Bid)
                    .where(Bid.id == chosen.id)
                    .values(status=BidStatus.ACCEPTED)
                )
                rejected = await db.execute(
                    update(Bid)
                    .where(Bid.request_id == request_id, Bid.id != chosen.id)
                    .values(status=BidStatus.REJECTED)
                )

                await db.commit()
            except Exception:
                await db.rollback()
                raise

            await db.refresh(request)
            await db.refresh(chosen)

        logger.info(
            "Driver assigned",
            extra={
                "request_id": request_id,
                "driver_id": driver_id,
                "bid_id": chosen.id,
                "bids_rejected": rejected.rowcount
            }
        )
        return request
