"""
GPS tracking schemas: REST payloads and WebSocket messages.

REST bodies are snake_case like the rest of the API. WebSocket messages use
the camelCase keys browser clients send and expect.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Literal, Optional
from backend.app.models.tracking_enums import TrackingStatus


class GpsSampleCreate(BaseModel):
    """Schema for a driver's position sample."""
    request_id: int
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    speed: Optional[float] = Field(None, ge=0, description="km/h")
    heading: Optional[float] = Field(None, ge=0, le=360)
    accuracy: Optional[float] = Field(None, ge=0, description="meters")
    battery_level: Optional[int] = Field(None, ge=0, le=100)
    status: TrackingStatus = TrackingStatus.EN_ROUTE
    timestamp: Optional[datetime] = Field(None, description="When the fix was taken; defaults to now")


class GpsTrackingResponse(BaseModel):
    """Stored GPS sample."""
    id: int
    request_id: int
    driver_id: int
    latitude: float
    longitude: float
    speed: Optional[float]
    heading: Optional[float]
    accuracy: Optional[float]
    battery_level: Optional[int]
    status: TrackingStatus
    timestamp: datetime

    class Config:
        from_attributes = True


class LocationRecordResponse(BaseModel):
    """Response after recording a sample."""
    request_id: int
    tracking_id: int
    recorded: bool
    subscribers_notified: int


class SubscribeTrackingMessage(BaseModel):
    """Inbound: {"type": "subscribe_tracking", "requestId": 7}"""
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["subscribe_tracking"]
    # strict: JSON true/false or "7" are not request ids
    request_id: int = Field(..., alias="requestId", strict=True)


class LocationUpdateMessage(BaseModel):
    """Outbound fan-out payload for one sample."""
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["location_update"] = "location_update"
    id: int
    request_id: int = Field(..., alias="requestId")
    driver_id: int = Field(..., alias="driverId")
    latitude: float
    longitude: float
    speed: Optional[float] = None
    heading: Optional[float] = None
    accuracy: Optional[float] = None
    battery_level: Optional[int] = Field(None, alias="batteryLevel")
    status: TrackingStatus
    timestamp: datetime

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
