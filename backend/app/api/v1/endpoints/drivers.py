"""
Driver directory endpoint.

Lets admins and clients look up the driver behind a bid.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.schemas.admin import DriverProfile
from backend.app.schemas.auth import Principal
from backend.app.core.guards import require_role
from backend.app.core.exceptions import NotFoundError

router = APIRouter(prefix="/drivers", tags=["Drivers"])


@router.get("/{driver_id}", response_model=DriverProfile)
async def get_driver_profile(
    driver_id: int = Path(..., description="Driver user ID"),
    principal: Principal = Depends(require_role([UserRole.ADMIN, UserRole.CLIENT])),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(User).where(User.id == driver_id, User.role == UserRole.DRIVER)
    )
    driver = result.scalar_one_or_none()

    if not driver:
        raise NotFoundError("Driver", driver_id)

    return DriverProfile.model_validate(driver)
