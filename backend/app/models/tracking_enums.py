"""
Delivery leg enumeration for GPS samples.
"""

import enum


class TrackingStatus(str, enum.Enum):
    """Where the driver is in the delivery, as reported with each sample."""
    EN_ROUTE = "en_route"  # Heading to pickup
    ARRIVED_PICKUP = "arrived_pickup"
    PICKED_UP = "picked_up"
    EN_ROUTE_DELIVERY = "en_route_delivery"
    DELIVERED = "delivered"
