"""
Bid Pydantic schemas.
"""

from decimal import Decimal
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from backend.app.models.request_enums import BidStatus


class BidCreate(BaseModel):
    """Schema for a driver's bid on an open request."""
    request_id: int
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    message: Optional[str] = Field(None, max_length=2000)
    estimated_delivery: datetime


class BidResponse(BaseModel):
    """Schema for bid response."""
    id: int
    request_id: int
    driver_id: int
    amount: Decimal
    message: Optional[str]
    estimated_delivery: datetime
    status: BidStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
