"""
Authentication API endpoints.

Provides register, login, logout and current-user endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from paylog.app.db.session import get_db
from paylog.app.models.user import User
from paylog.app.models.enums import ADMIN_ROLES
from paylog.app.schemas.auth import UserRegister, UserLogin, TokenResponse, UserResponse, LogoutResponse
from paylog.app.core.security import get_password_hash, verify_password
from paylog.app.core.jwt import create_access_token
from paylog.app.core.dependencies import get_current_user
from paylog.app.core.token_revocation import revoke_token
from paylog.app.services.audit import log_auth_event, AuditAction

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_for(user: User) -> TokenResponse:
    jwt_payload = {
        "sub": user.username,
        "user_id": user.id,
        "role": user.role.value,
    }

    return TokenResponse(
        access_token=create_access_token(data=jwt_payload),
        token_type="bearer",
        user_id=user.id,
        username=user.username,
        email=user.email,
        role=user.role
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new standard user.

    Admin roles cannot be created via the API (see seed_users.py).
    """
    if user_data.role in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin users cannot be registered via API"
        )

    result = await db.execute(
        select(User).where(
            or_(User.username == user_data.username, User.email == user_data.email)
        )
    )
    existing_user = result.scalars().first()

    if existing_user:
        if existing_user.username == user_data.username:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username already registered"
            )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_user = User(
        email=user_data.email,
        username=user_data.username,
        full_name=user_data.full_name,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        is_active=True
    )

    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)

    return _token_for(new_user)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login with username or email and return a JWT.

    Successful and failed attempts are written to the audit log.
    """
    ip_address = request.client.host if request.client else None

    result = await db.execute(
        select(User).where(
            or_(User.username == credentials.username, User.email == credentials.username)
        )
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id if user else None,
            username=user.username if user else credentials.username,
            ip_address=ip_address,
            metadata={"reason": "Invalid password" if user else "User not found"}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id,
            username=user.username,
            ip_address=ip_address,
            metadata={"reason": "Account is inactive/blocked"}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account"
        )

    token = _token_for(user)

    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        username=user.username,
        ip_address=ip_address
    )

    return token


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Revoke the bearer token used for this request.
    """
    revoked = await revoke_token(current_user["token"], current_user["user_id"])
    if not revoked:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not revoke token, please retry"
        )

    await log_auth_event(
        db=db,
        action=AuditAction.LOGOUT,
        user_id=current_user["user_id"],
        username=current_user["sub"]
    )

    return LogoutResponse(success=True, message="Logged out")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Current authenticated user.

    Raises:
        404: If user not found in database
    """
    result = await db.execute(select(User).where(User.id == current_user.get("user_id")))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return UserResponse.model_validate(user)
