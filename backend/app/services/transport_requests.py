"""
Request Lifecycle Manager.

Owns the transport request state machine:

    PENDING -> ASSIGNED -> IN_PROGRESS -> COMPLETED
    ASSIGNED | IN_PROGRESS -> CANCELLED
    ASSIGNED | IN_PROGRESS -> PENDING   (reassignment)

COMPLETED and CANCELLED are terminal. Moving to ASSIGNED always goes
through bid acceptance so that an assigned request has exactly one
ACCEPTED bid.
"""

import logging
from typing import List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from backend.app.core.exceptions import (
    ForbiddenError, InvalidTransitionError, ValidationError
)
from backend.app.core.guards import access_policy
from backend.app.core.timeutils import ensure_utc
from backend.app.models.bid import Bid
from backend.app.models.transport_request import TransportRequest
from backend.app.models.request_enums import (
    RequestStatus, BidStatus, REASSIGNABLE_STATUSES, can_transition
)
from backend.app.schemas.auth import Principal
from backend.app.schemas.transport_request import TransportRequestCreate, StatusUpdate
from backend.app.services.bidding import BiddingService, load_request, refuse
from backend.app.services.request_locks import request_locks

logger = logging.getLogger(__name__)

# Free-text fields that must carry something besides whitespace
_TEXT_FIELDS = ("pickup_location", "delivery_location", "item_description", "dimensions")


class TransportRequestService:

    @staticmethod
    async def create_request(
        db: AsyncSession,
        principal: Principal,
        data: TransportRequestCreate
    ) -> TransportRequest:
        """
        Post a new request to the open market.

        Raises:
            ForbiddenError: caller is not a client
            ValidationError: blank text, non-positive weight or budget, or
                delivery date before pickup date
        """
        if not principal.is_client:
            raise ForbiddenError("Only clients can create transport requests")

        blank = [name for name in _TEXT_FIELDS if not getattr(data, name).strip()]
        if blank:
            raise ValidationError("Fields must not be blank", {"fields": blank})

        if data.weight <= 0 or data.budget <= 0:
            raise ValidationError(
                "Weight and budget must be greater than zero",
                {"weight": str(data.weight), "budget": str(data.budget)}
            )

        pickup_date = ensure_utc(data.pickup_date)
        delivery_date = ensure_utc(data.delivery_date)
        if delivery_date < pickup_date:
            raise ValidationError(
                "Delivery date cannot be before pickup date",
                {"pickup_date": pickup_date.isoformat(), "delivery_date": delivery_date.isoformat()}
            )

        request = TransportRequest(
            client_id=principal.id,
            pickup_location=data.pickup_location.strip(),
            delivery_location=data.delivery_location.strip(),
            pickup_date=pickup_date,
            delivery_date=delivery_date,
            item_description=data.item_description.strip(),
            weight=data.weight,
            dimensions=data.dimensions.strip(),
            budget=data.budget,
            status=RequestStatus.PENDING
        )
        db.add(request)
        await db.commit()
        await db.refresh(request)

        logger.info(
            "Transport request created",
            extra={"request_id": request.id, "client_id": principal.id}
        )
        return request

    @staticmethod
    async def get_request(
        db: AsyncSession,
        principal: Principal,
        request_id: int
    ) -> TransportRequest:
        request = await load_request(db, request_id)
        access_policy.enforce_view_request(request, principal)
        return request

    @staticmethod
    async def list_requests(db: AsyncSession, principal: Principal) -> List[TransportRequest]:
        """Requests visible to the caller, newest first."""
        query = select(TransportRequest)
        clause = access_policy.visibility_clause(principal)
        if clause is not None:
            query = query.where(clause)

        result = await db.execute(
            query.order_by(TransportRequest.created_at.desc(), TransportRequest.id.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def update_status(
        db: AsyncSession,
        principal: Principal,
        request_id: int,
        data: StatusUpdate
    ) -> TransportRequest:
        """
        Move a request to data.status.

        ASSIGNED delegates to bid acceptance and PENDING to reassignment.
        IN_PROGRESS and COMPLETED may be set by an admin or the assigned
        driver; CANCELLED by an admin only.

        Raises:
            ForbiddenError: caller may not perform this change
            NotFoundError: unknown request (or no matching bid for ASSIGNED)
            InvalidTransitionError: target not reachable from current status
            ValidationError: ASSIGNED without a driver id
        """
        target = data.status

        if target == RequestStatus.ASSIGNED:
            if not principal.is_admin:
                await refuse(db, request_id, "Only admins can assign drivers")
            if data.assigned_driver_id is None:
                raise ValidationError(
                    "assigned_driver_id is required to assign a request",
                    {"status": target.value}
                )
            return await BiddingService.accept_bid(db, principal, request_id, data.assigned_driver_id)

        if target == RequestStatus.PENDING:
            request, _ = await TransportRequestService.reassign(db, principal, request_id)
            return request

        if principal.is_client:
            await refuse(db, request_id, "Clients cannot change request status")
        if target == RequestStatus.CANCELLED and not principal.is_admin:
            await refuse(db, request_id, "Only admins can cancel transport requests")

        async with request_locks.hold(request_id):
            try:
                request = await load_request(db, request_id, for_update=True)
                current = request.status

                if principal.is_driver and request.assigned_driver_id != principal.id:
                    raise ForbiddenError("Only the assigned driver can update this request")

                if not can_transition(current, target):
                    raise InvalidTransitionError(current.value, target.value)

                values = {"status": target}
                if target == RequestStatus.CANCELLED:
                    values["assigned_driver_id"] = None

                changed = await db.execute(
                    update(TransportRequest)
                    .where(
                        TransportRequest.id == request_id,
                        TransportRequest.status == current
                    )
                    .values(**values)
                )
                if changed.rowcount != 1:
                    raise InvalidTransitionError(
                        current.value,
                        target.value,
                        "Transport request status changed concurrently"
                    )

                await db.commit()
            except Exception:
                await db.rollback()
                raise

            await db.refresh(request)

        logger.info(
            "Transport request status changed",
            extra={
                "request_id": request_id,
                "from_status": current.value,
                "to_status": target.value,
                "actor_id": principal.id
            }
        )
        return request

    @staticmethod
    async def reassign(
        db: AsyncSession,
        principal: Principal,
        request_id: int
    ) -> Tuple[TransportRequest, int]:
        """
        Reopen an ASSIGNED or IN_PROGRESS request for bidding (admins only).

        Clears the driver and rejects every bid on the request, including
        the previously accepted one. Drivers must re-bid.

        Returns:
            (request, number of bids moved to REJECTED)
        """
        if not principal.is_admin:
            await refuse(db, request_id, "Only admins can reassign transport requests")

        async with request_locks.hold(request_id):
            try:
                request = await load_request(db, request_id, for_update=True)
                current = request.status

                if current not in REASSIGNABLE_STATUSES:
                    raise InvalidTransitionError(
                        current.value,
                        RequestStatus.PENDING.value,
                        f"Only assigned or in-progress requests can be reassigned, current status: {current.value}"
                    )

                reopened = await db.execute(
                    update(TransportRequest)
                    .where(
                        TransportRequest.id == request_id,
                        TransportRequest.status == current
                    )
                    .values(status=RequestStatus.PENDING, assigned_driver_id=None)
                )
                if reopened.rowcount != 1:
                    raise InvalidTransitionError(
                        current.value,
                        RequestStatus.PENDING.value,
                        "Transport request status changed concurrently"
                    )

                rejected = await db.execute(
                    update(Bid)
                    .where(Bid.request_id == request_id, Bid.status != BidStatus.REJECTED)
                    .values(status=BidStatus.REJECTED)
                )
                bids_rejected = rejected.rowcount

                await db.commit()
            except Exception:
                await db.rollback()
                raise

            await db.refresh(request)

        logger.info(
            "Transport request reassigned",
            extra={
                "request_id": request_id,
                "previous_status": current.value,
                "bids_rejected": bids_rejected
            }
        )
        return request, bids_rejected
