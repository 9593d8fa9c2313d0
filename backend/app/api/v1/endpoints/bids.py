"""
Bid API Endpoints.

Drivers bid on open requests and review their own bids; admins and the
owning client review the bids on a request.
"""

from typing import List
from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_principal
from backend.app.schemas.auth import Principal
from backend.app.schemas.bid import BidCreate, BidResponse
from backend.app.services.bidding import BiddingService
from backend.app.services.audit import log_principal_event, AuditAction

router = APIRouter(prefix="/bids", tags=["Bids"])


@router.post("", response_model=BidResponse, status_code=status.HTTP_201_CREATED)
async def submit_bid(
    data: BidCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Bid on a PENDING transport request (drivers only)."""
    bid = await BiddingService.submit_bid(db, principal, data)

    await log_principal_event(
        db, principal, AuditAction.BID_SUBMITTED, "bid", bid.id,
        metadata={"request_id": bid.request_id, "amount": str(bid.amount)}
    )

    return BidResponse.model_validate(bid)


@router.get("/request/{request_id}", response_model=List[BidResponse])
async def list_bids_for_request(
    request_id: int = Path(..., description="Transport request ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Bids on a request, newest first (admin or owning client)."""
    bids = await BiddingService.list_bids_for_request(db, principal, request_id)
    return [BidResponse.model_validate(bid) for bid in bids]


@router.get("/driver", response_model=List[BidResponse])
async def list_my_bids(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """The calling driver's bids, newest first."""
    bids = await BiddingService.list_bids_for_driver(db, principal)
    return [BidResponse.model_validate(bid) for bid in bids]
