"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import (
    auth, admin, drivers, transport_requests, bids, gps_tracking
)

router = APIRouter()

router.include_router(auth.router)
router.include_router(admin.router)
router.include_router(drivers.router)

# Marketplace
router.include_router(transport_requests.router)
router.include_router(bids.router)

# Live tracking (REST + WebSocket)
router.include_router(gps_tracking.router)
router.include_router(gps_tracking.ws_router)
