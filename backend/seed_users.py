"""
Database seeding script for initial users.

Admins cannot register through the API, so the first ADMIN account is
created here. Optionally seeds a demo client and driver.

Usage:
    python backend/seed_users.py [--demo]
"""

import asyncio
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.db.session import AsyncSessionLocal, engine, Base
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.core.security import get_password_hash
from sqlalchemy import select

# Import remaining models so create_all sees every table
from backend.app.models.audit_log import AuditLog
from backend.app.models.transport_request import TransportRequest
from backend.app.models.bid import Bid
from backend.app.models.gps_tracking import GpsTracking

ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@freight.local")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin123")

DEMO_USERS = [
    ("client@freight.local", "client123", UserRole.CLIENT, "Demo", "Client"),
    ("driver@freight.local", "driver123", UserRole.DRIVER, "Demo", "Driver"),
]


async def _create_if_missing(db, email, password, role, first_name=None, last_name=None) -> bool:
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        print(f"ℹ️  {role.value.upper()} {email} already exists, skipping")
        return False

    db.add(User(
        email=email,
        hashed_password=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        role=role
    ))
    print(f"✅ Created {role.value.upper()} user ({email})")
    return True


async def seed_users(demo: bool = False):
    """
    Seed the ADMIN account, plus a demo client and driver when demo is set.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting user seeding...")

        await _create_if_missing(db, ADMIN_EMAIL, ADMIN_PASSWORD, UserRole.ADMIN, "System", "Admin")

        if demo:
            for email, password, role, first_name, last_name in DEMO_USERS:
                await _create_if_missing(db, email, password, role, first_name, last_name)

        await db.commit()

    await engine.dispose()

    print("\n🎉 User seeding completed successfully!")
    print("\nNote: clients and drivers register via POST /v1/auth/register")


if __name__ == "__main__":
    asyncio.run(seed_users(demo="--demo" in sys.argv))
