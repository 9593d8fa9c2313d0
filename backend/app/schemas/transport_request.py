"""
Transport request Pydantic schemas.
"""

from decimal import Decimal
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from backend.app.models.request_enums import RequestStatus


class TransportRequestCreate(BaseModel):
    """Schema for posting a new transport request (clients only)."""
    pickup_location: str = Field(..., min_length=1, description="Pickup address")
    delivery_location: str = Field(..., min_length=1, description="Delivery address")
    pickup_date: datetime
    delivery_date: datetime
    item_description: str = Field(..., min_length=1)
    weight: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, description="Weight in kilograms")
    dimensions: str = Field(..., min_length=1, description="Free-form dimensions, e.g. 120x80x60 cm")
    budget: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class StatusUpdate(BaseModel):
    """
    Schema for moving a request through its lifecycle.

    assigned_driver_id is only read when status is ASSIGNED.
    """
    status: RequestStatus
    assigned_driver_id: Optional[int] = None


class DriverAssignment(BaseModel):
    """Schema for assigning a bidding driver to a request."""
    driver_id: int


class DriverTransportRequestResponse(BaseModel):
    """Request as drivers see it: no budget."""
    id: int
    client_id: int
    pickup_location: str
    delivery_location: str
    pickup_date: datetime
    delivery_date: datetime
    item_description: str
    weight: Decimal
    dimensions: str
    status: RequestStatus
    assigned_driver_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TransportRequestResponse(DriverTransportRequestResponse):
    """Full request view for the owning client and admins."""
    budget: Decimal


class ReassignResponse(BaseModel):
    """Response after reopening a request."""
    request_id: int
    status: RequestStatus
    bids_rejected: int
