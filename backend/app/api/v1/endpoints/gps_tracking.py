"""
Live Tracking API Endpoints.

Drivers post GPS samples over REST; viewers either subscribe over the
tracking WebSocket or poll the history endpoints.

WebSocket protocol (JSON, ``type`` discriminator):

    -> {"type": "subscribe_tracking", "requestId": 7}
    <- {"type": "subscribed", "requestId": 7}
    <- {"type": "location_update", "requestId": 7, "latitude": ..., ...}
    -> {"type": "unsubscribe_tracking", "requestId": 7}
    <- {"type": "unsubscribed", "requestId": 7}
    <- {"type": "error", "message": "..."}
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Query, Request, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.dependencies import get_current_principal, resolve_principal
from backend.app.core.exceptions import AppException
from backend.app.schemas.auth import Principal
from backend.app.schemas.gps_tracking import (
    GpsSampleCreate, GpsTrackingResponse, LocationRecordResponse, SubscribeTrackingMessage
)
from backend.app.services.gps_tracking import TrackingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gps-tracking", tags=["Live Tracking"])
ws_router = APIRouter(tags=["Live Tracking"])


@router.post("", response_model=LocationRecordResponse, status_code=status.HTTP_201_CREATED)
async def record_location(
    data: GpsSampleCreate,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a GPS sample (assigned driver only) and push it to subscribers.
    """
    hub = getattr(request.app.state, "tracking_hub", None)
    sample, notified = await TrackingService.record_sample(db, hub, principal, data)

    return LocationRecordResponse(
        request_id=sample.request_id,
        tracking_id=sample.id,
        recorded=True,
        subscribers_notified=notified
    )


@router.get("/{request_id}", response_model=List[GpsTrackingResponse])
async def get_tracking_history(
    request_id: int = Path(..., description="Transport request ID"),
    limit: Optional[int] = Query(None, ge=1, description="Only the newest N samples; omit for the full log"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """GPS samples for a request, newest first."""
    samples = await TrackingService.get_history_for_request(db, principal, request_id, limit)
    return [GpsTrackingResponse.model_validate(s) for s in samples]


@router.get("/{request_id}/latest", response_model=GpsTrackingResponse)
async def get_latest_location(
    request_id: int = Path(..., description="Transport request ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    Most recent GPS sample for a request.

    Polling fallback for clients without a WebSocket; poll every
    tracking_poll_interval_seconds.
    """
    sample = await TrackingService.get_latest_for_request(db, principal, request_id)
    return GpsTrackingResponse.model_validate(sample)


def _error(message: str, request_id: Optional[int] = None) -> dict:
    payload = {"type": "error", "message": message}
    if request_id is not None:
        payload["requestId"] = request_id
    return payload


@ws_router.websocket("/ws/tracking")
async def tracking_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """
    Live location stream. Authenticates with ?token=<jwt>; closes with 1008
    when the token is missing, invalid or revoked.

    The session is only read from, and every read is followed by a rollback
    so an idle socket holds no pooled connection.
    """
    principal = await resolve_principal(token, db) if token else None
    await db.rollback()
    if principal is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    hub = websocket.app.state.tracking_hub
    await websocket.accept()
    await websocket.send_json({
        "type": "connected",
        "pollIntervalSeconds": settings.tracking_poll_interval_seconds
    })

    try:
        while True:
            try:
                raw = await websocket.receive_json()
            except ValueError:
                await websocket.send_json(_error("Message must be JSON"))
                continue

            kind = raw.get("type") if isinstance(raw, dict) else None

            if kind == "unsubscribe_tracking":
                request_id = raw.get("requestId")
                if isinstance(request_id, int) and not isinstance(request_id, bool):
                    await hub.unsubscribe(websocket, request_id)
                    await websocket.send_json({"type": "unsubscribed", "requestId": request_id})
                else:
                    await websocket.send_json(_error("requestId must be an integer"))
                continue

            try:
                message = SubscribeTrackingMessage.model_validate(raw)
            except PydanticValidationError:
                if kind == "subscribe_tracking":
                    await websocket.send_json(_error("requestId must be an integer"))
                else:
                    await websocket.send_json(_error(f"Unsupported message type: {kind}"))
                continue

            try:
                await TrackingService.authorize_subscription(db, principal, message.request_id)
            except AppException as exc:
                await websocket.send_json(_error(exc.message, message.request_id))
                continue
            finally:
                await db.rollback()

            await hub.subscribe(websocket, message.request_id)
            await websocket.send_json({"type": "subscribed", "requestId": message.request_id})
    except WebSocketDisconnect:
        logger.debug("Tracking socket disconnected", extra={"user_id": principal.id})
    finally:
        await hub.disconnect(websocket)
