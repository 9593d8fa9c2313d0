"""
Bid database model.

A driver's priced proposal against a transport request.
"""

from sqlalchemy import Column, Integer, Text, Numeric, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.request_enums import BidStatus


class Bid(Base):
    """
    Bid model.

    Created PENDING by a driver; only bid resolution (assignment or
    reassignment) moves it to ACCEPTED or REJECTED.
    """
    __tablename__ = "bids"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    request_id = Column(Integer, ForeignKey('transport_requests.id'), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    message = Column(Text, nullable=True)
    estimated_delivery = Column(DateTime(timezone=True), nullable=False)

    status = Column(Enum(BidStatus), default=BidStatus.PENDING, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Bid(id={self.id}, request_id={self.request_id}, driver_id={self.driver_id}, status='{self.status.value}')>"
