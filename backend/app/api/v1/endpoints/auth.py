"""
Authentication API endpoints.

Provides register, login, logout and current-user endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.schemas.auth import UserRegister, UserLogin, TokenResponse, UserResponse, Principal
from backend.app.core.security import get_password_hash, verify_password
from backend.app.core.jwt import create_access_token
from backend.app.core.dependencies import get_current_principal, get_current_token
from backend.app.core.exceptions import AuthenticationError, ForbiddenError
from backend.app.core.token_revocation import revoke_token
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _client_ip(request: Request):
    return request.client.host if request.client else None


def _issue_token(user: User) -> TokenResponse:
    access_token = create_access_token(data={
        "sub": user.email,
        "user_id": user.id,
        "role": user.role.value
    })
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=user.id,
        email=user.email,
        role=user.role
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new client or driver.

    ADMIN accounts cannot be created via the API; use seed_users.py.
    """
    if user_data.role == UserRole.ADMIN:
        raise ForbiddenError("Admin users cannot be registered via API")

    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_user = User(
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        role=user_data.role
    )

    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)

    await log_event(
        db=db,
        action=AuditAction.USER_REGISTERED,
        actor_id=new_user.id,
        actor_email=new_user.email,
        entity_type="user",
        entity_id=new_user.id,
        metadata={"role": new_user.role.value},
        ip_address=_client_ip(request)
    )

    return _issue_token(new_user)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login with email and password and return a JWT.

    Successful and failed attempts are written to the audit log.
    """
    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_id=user.id if user else None,
            actor_email=credentials.email,
            metadata={"reason": "Invalid password" if user else "User not found"},
            ip_address=_client_ip(request)
        )
        raise AuthenticationError("Invalid credentials")

    await log_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        actor_id=user.id,
        actor_email=user.email,
        ip_address=_client_ip(request)
    )

    return _issue_token(user)


@router.post("/logout")
async def logout(
    request: Request,
    token: str = Depends(get_current_token),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented token."""
    revoked = await revoke_token(token, principal.id)

    await log_event(
        db=db,
        action=AuditAction.LOGOUT,
        actor_id=principal.id,
        actor_email=principal.email,
        metadata={"revoked": revoked},
        ip_address=_client_ip(request)
    )

    return {"message": "Successfully logged out", "revoked": revoked}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Get current authenticated user information."""
    result = await db.execute(select(User).where(User.id == principal.id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return UserResponse.model_validate(user)
