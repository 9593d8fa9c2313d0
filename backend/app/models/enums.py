"""
User roles enumeration.

Defines the role types for the freight brokerage.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        CLIENT: Posts transport requests (default role)
        DRIVER: Bids on open requests and carries out assigned ones
        ADMIN: Assigns drivers, moves requests through their lifecycle
    """
    CLIENT = "client"
    DRIVER = "driver"
    ADMIN = "admin"
