"""
GPS Tracking database model.

Append-only log of driver position samples for a transport request.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.tracking_enums import TrackingStatus


class GpsTracking(Base):
    """
    GPS sample. Rows are never updated or deleted.
    """
    __tablename__ = "gps_tracking"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # References
    request_id = Column(Integer, ForeignKey('transport_requests.id'), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('users.id'), nullable=False)

    # GPS fix
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    speed = Column(Float, nullable=True)  # km/h
    heading = Column(Float, nullable=True)  # degrees
    accuracy = Column(Float, nullable=True)  # meters
    battery_level = Column(Integer, nullable=True)  # percent

    status = Column(Enum(TrackingStatus), default=TrackingStatus.EN_ROUTE, nullable=False)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<GpsTracking(request_id={self.request_id}, lat={self.latitude}, lng={self.longitude})>"
