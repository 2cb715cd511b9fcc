from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from datetime import datetime

from grantsportal.core.database import get_db
from grantsportal.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    GrantsPortalError,
    InvalidTokenError,
)
from grantsportal.core.logging_config import logger, set_user_id
from grantsportal.core.rate_limiter import limiter
from grantsportal.core.types import is_valid_uuid
from grantsportal.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from grantsportal.models import ActivityAction, User
from grantsportal.modules.auth.dependencies import get_current_user
from grantsportal.schemas.auth import (
    LoginResponse,
    RefreshTokenRequest,
    RegisterResponse,
    TokenPair,
    UserLogin,
    UserRegister,
    UserResponse,
)
from grantsportal.schemas.common import MessageResponse
from grantsportal.services.activity_log import client_ip, record_activity
from grantsportal.services.settings_service import get_settings

router = APIRouter()


def issue_tokens(user: User) -> TokenPair:
    access_token = create_access_token({"sub": str(user.id), "role": user.role.value})
    refresh_token = create_refresh_token({"sub": str(user.id)})
    user.refresh_token = refresh_token
    return TokenPair(access_token=access_token, refresh_token=refresh_token)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def register(
    request: Request,
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """Register a new account (rate limited: 5/min)"""
    portal_settings = await get_settings(db)
    if not portal_settings.user_registration:
        raise AuthorizationError("User registration is currently disabled")

    result = await db.execute(
        select(User).where(or_(User.email == user_data.email, User.username == user_data.username))
    )
    if result.scalars().first():
        logger.log_auth_event(
            event="register",
            success=False,
            user_email=user_data.email,
            reason="Email or username already registered",
            client_ip=client_ip(request)
        )
        raise ConflictError("User with this email or username already exists")

    user = User(
        username=user_data.username,
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        institution=user_data.institution,
        department=user_data.department,
        designation=user_data.designation,
        phone=user_data.phone,
        role=user_data.role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.log_auth_event(
        event="register",
        success=True,
        user_email=user.email,
        client_ip=client_ip(request),
        user_role=user.role.value
    )

    response = RegisterResponse(
        message="User registered successfully",
        user=UserResponse.model_validate(user),
    )
    await record_activity(
        db, ActivityAction.CREATE_USER,
        user_id=user.id, target_type="User", target_id=user.id,
        description="User registered successfully",
        request=request,
    )
    return response


@router.post("/login", response_model=LoginResponse)
@limiter.limit("10/minute")
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login with email (or username) and password (rate limited: 10/min)"""
    identifier = credentials.email.strip()
    result = await db.execute(
        select(User).where(or_(User.email == identifier, User.username == identifier))
    )
    user = result.scalars().first()

    # Unknown account, inactive account and wrong password look the same
    if not user or not user.is_active or not verify_password(credentials.password, user.hashed_password):
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=identifier,
            reason="Invalid credentials",
            client_ip=client_ip(request)
        )
        raise AuthenticationError("Invalid credentials")

    tokens = issue_tokens(user)
    user.last_login = datetime.utcnow()
    await db.commit()

    set_user_id(str(user.id))
    logger.log_auth_event(event="login", success=True, user_email=user.email, client_ip=client_ip(request))

    response = LoginResponse(
        message="Login successful",
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        user=UserResponse.model_validate(user),
    )
    await record_activity(
        db, ActivityAction.LOGIN,
        user_id=user.id, target_type="System",
        description="User logged in successfully",
        request=request,
    )
    return response


@router.post("/refresh-token", response_model=TokenPair)
async def refresh_token(
    body: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange the stored refresh token for a new token pair"""
    if not body.refresh_token:
        raise AuthenticationError("Refresh token required")

    try:
        payload = decode_token(body.refresh_token)
    except GrantsPortalError:
        raise InvalidTokenError("Invalid refresh token")

    if payload.get("type") != "refresh":
        raise InvalidTokenError("Invalid refresh token")

    user_id = payload.get("sub")
    user = await db.get(User, user_id) if user_id and is_valid_uuid(user_id) else None
    if not user or not user.is_active or user.refresh_token != body.refresh_token:
        raise InvalidTokenError("Invalid refresh token")

    tokens = issue_tokens(user)
    await db.commit()
    return tokens


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Invalidate the stored refresh token"""
    current_user.refresh_token = None
    await db.commit()

    logger.log_auth_event(event="logout", success=True, user_email=current_user.email)
    await record_activity(
        db, ActivityAction.LOGOUT,
        user_id=current_user.id, target_type="System",
        description="User logged out successfully",
        request=request,
    )
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current user info"""
    return current_user
