"""
Transport Request database model.

A shipment job posted by a client and bid on by drivers.
"""

from sqlalchemy import Column, Integer, String, Text, Numeric, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.request_enums import RequestStatus


class TransportRequest(Base):
    """
    Transport Request model.

    assigned_driver_id is set exactly while status is ASSIGNED, IN_PROGRESS
    or COMPLETED.
    """
    __tablename__ = "transport_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership - request belongs to the client who posted it
    client_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    # Route
    pickup_location = Column(Text, nullable=False)
    delivery_location = Column(Text, nullable=False)
    pickup_date = Column(DateTime(timezone=True), nullable=False)
    delivery_date = Column(DateTime(timezone=True), nullable=False)

    # Cargo
    item_description = Column(Text, nullable=False)
    weight = Column(Numeric(10, 2), nullable=False)
    dimensions = Column(String(255), nullable=False)
    budget = Column(Numeric(10, 2), nullable=False)

    # Lifecycle
    status = Column(Enum(RequestStatus), default=RequestStatus.PENDING, nullable=False, index=True)
    assigned_driver_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<TransportRequest(id={self.id}, client_id={self.client_id}, status='{self.status.value}')>"
