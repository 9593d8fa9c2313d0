"""
Transport Request API Endpoints.

Clients post requests, drivers browse the open market, admins assign,
cancel and reassign. Every response passes through the access policy so
drivers never receive a budget.
"""

from typing import List, Union
from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_principal
from backend.app.core.guards import access_policy, require_admin
from backend.app.schemas.auth import Principal
from backend.app.schemas.transport_request import (
    TransportRequestCreate, StatusUpdate, DriverAssignment, ReassignResponse,
    TransportRequestResponse, DriverTransportRequestResponse
)
from backend.app.services.transport_requests import TransportRequestService
from backend.app.services.bidding import BiddingService
from backend.app.services.audit import log_principal_event, AuditAction

router = APIRouter(prefix="/transport-requests", tags=["Transport Requests"])

RequestView = Union[TransportRequestResponse, DriverTransportRequestResponse]


@router.post("", response_model=TransportRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_transport_request(
    data: TransportRequestCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Post a new transport request (clients only). Starts as PENDING."""
    request = await TransportRequestService.create_request(db, principal, data)

    await log_principal_event(
        db, principal, AuditAction.REQUEST_CREATED, "transport_request", request.id,
        metadata={"budget": str(request.budget)}
    )

    return TransportRequestResponse.model_validate(request)


@router.get("", response_model=List[RequestView])
async def list_transport_requests(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    List requests visible to the caller, newest first.

    Clients see their own, drivers see PENDING requests, admins see all.
    """
    requests = await TransportRequestService.list_requests(db, principal)
    return access_policy.shape_requests(requests, principal)


@router.get("/{request_id}", response_model=RequestView)
async def get_transport_request(
    request_id: int = Path(..., description="Transport request ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    request = await TransportRequestService.get_request(db, principal, request_id)
    return access_policy.shape_request(request, principal)


@router.patch("/{request_id}/assign", response_model=TransportRequestResponse)
async def assign_driver(
    data: DriverAssignment,
    request_id: int = Path(..., description="Transport request ID"),
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Accept a driver's pending bid (admin only).

    The chosen bid becomes ACCEPTED, all others REJECTED, and the request
    ASSIGNED, in one transaction.
    """
    request = await BiddingService.accept_bid(db, admin, request_id, data.driver_id)

    await log_principal_event(
        db, admin, AuditAction.DRIVER_ASSIGNED, "transport_request", request.id,
        metadata={"driver_id": data.driver_id}
    )

    return TransportRequestResponse.model_validate(request)


@router.patch("/{request_id}/status", response_model=RequestView)
async def update_request_status(
    data: StatusUpdate,
    request_id: int = Path(..., description="Transport request ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    Move a request through its lifecycle.

    - ASSIGNED: admin, requires assigned_driver_id with a pending bid
    - IN_PROGRESS / COMPLETED: admin or the assigned driver
    - CANCELLED: admin
    - PENDING: admin, reopens the request and rejects all bids
    """
    request = await TransportRequestService.update_status(db, principal, request_id, data)

    await log_principal_event(
        db, principal, AuditAction.REQUEST_STATUS_CHANGED, "transport_request", request.id,
        metadata={"status": request.status.value, "assigned_driver_id": request.assigned_driver_id}
    )

    return access_policy.shape_request(request, principal)


@router.post("/{request_id}/reassign", response_model=ReassignResponse)
async def reassign_transport_request(
    request_id: int = Path(..., description="Transport request ID"),
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Reopen an assigned or in-progress request for bidding (admin only)."""
    request, bids_rejected = await TransportRequestService.reassign(db, admin, request_id)

    await log_principal_event(
        db, admin, AuditAction.REQUEST_REASSIGNED, "transport_request", request.id,
        metadata={"bids_rejected": bids_rejected}
    )

    return ReassignResponse(
        request_id=request.id,
        status=request.status,
        bids_rejected=bids_rejected
    )
