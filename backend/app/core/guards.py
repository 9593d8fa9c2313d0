"""
Security guards for role-based access and response shaping.

require_role gates endpoints by role. AccessPolicy decides which transport
requests and bids a principal may see and strips fields drivers must not
receive; it is applied to everything that leaves the service layer.
"""

from typing import Iterable, List, Optional, Union
from fastapi import Depends
from sqlalchemy.sql.elements import ColumnElement
from backend.app.core.dependencies import get_current_principal
from backend.app.core.exceptions import ForbiddenError
from backend.app.models.enums import UserRole
from backend.app.models.request_enums import RequestStatus
from backend.app.models.transport_request import TransportRequest
from backend.app.schemas.auth import Principal
from backend.app.schemas.transport_request import (
    TransportRequestResponse, DriverTransportRequestResponse
)

RequestView = Union[TransportRequestResponse, DriverTransportRequestResponse]


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/bids")
        async def submit_bid(principal: Principal = Depends(require_role([UserRole.DRIVER]))):
            ...

    Raises:
        ForbiddenError if the principal's role is not in allowed_roles
    """
    async def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed_roles:
            raise ForbiddenError(
                f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )
        return principal

    return role_checker


require_admin = require_role([UserRole.ADMIN])


class AccessPolicy:
    """
    Role-dependent visibility rules for transport requests and bids.

    - Clients see only their own requests (with budget).
    - Drivers see the open market (PENDING requests) without budget, plus
      the single request they are assigned to.
    - Admins see everything.
    """

    def can_view_request(self, request: TransportRequest, principal: Principal) -> bool:
        if principal.is_admin:
            return True
        if principal.is_client:
            return request.client_id == principal.id
        if principal.is_driver:
            return (
                request.status == RequestStatus.PENDING
                or request.assigned_driver_id == principal.id
            )
        return False

    def enforce_view_request(self, request: TransportRequest, principal: Principal) -> None:
        if not self.can_view_request(request, principal):
            raise ForbiddenError("You do not have permission to view this transport request")

    def visibility_clause(self, principal: Principal) -> Optional[ColumnElement]:
        """
        WHERE clause restricting a transport request listing.

        Returns None for admins (no filtering needed).
        """
        if principal.is_admin:
            return None
        if principal.is_client:
            return TransportRequest.client_id == principal.id
        if principal.is_driver:
            return TransportRequest.status == RequestStatus.PENDING
        raise ForbiddenError("Unknown role")

    def filter_requests(
        self,
        requests: Iterable[TransportRequest],
        principal: Principal
    ) -> List[TransportRequest]:
        """In-memory counterpart of visibility_clause for collections."""
        if principal.is_admin:
            return list(requests)
        if principal.is_client:
            return [r for r in requests if r.client_id == principal.id]
        if principal.is_driver:
            return [r for r in requests if r.status == RequestStatus.PENDING]
        return []

    def shape_request(self, request: TransportRequest, principal: Principal) -> RequestView:
        """Serialize a request for the viewer; drivers never receive the budget."""
        if principal.is_driver:
            return DriverTransportRequestResponse.model_validate(request)
        return TransportRequestResponse.model_validate(request)

    def shape_requests(
        self,
        requests: Iterable[TransportRequest],
        principal: Principal
    ) -> List[RequestView]:
        return [self.shape_request(r, principal) for r in self.filter_requests(requests, principal)]

    def enforce_view_bids(self, request: TransportRequest, principal: Principal) -> None:
        """Bids on a request: admins and the owning client. Drivers use their own listing."""
        if principal.is_driver:
            raise ForbiddenError("Drivers cannot view bids on a request")
        if principal.is_client and request.client_id != principal.id:
            raise ForbiddenError("You do not have permission to view bids on this request")

    def can_track(self, request: TransportRequest, principal: Principal) -> bool:
        if principal.is_admin:
            return True
        if principal.is_client:
            return request.client_id == principal.id
        if principal.is_driver:
            return request.assigned_driver_id == principal.id
        return False

    def enforce_track(self, request: TransportRequest, principal: Principal) -> None:
        if not self.can_track(request, principal):
            raise ForbiddenError("You do not have permission to track this transport request")


access_policy = AccessPolicy()
