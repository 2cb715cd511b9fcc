from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from typing import Optional

from grantsportal.core.database import get_db
from grantsportal.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from grantsportal.core.logging_config import logger
from grantsportal.core.policy import Action, Resource
from grantsportal.core.security import get_password_hash
from grantsportal.core.types import is_valid_uuid
from grantsportal.models import ActivityAction, User, UserRole
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.schemas.auth import UserResponse
from grantsportal.schemas.common import MessageResponse
from grantsportal.schemas.user import UserCreate, UserPage, UserStats, UserUpdate
from grantsportal.services.activity_log import record_activity
from grantsportal.utils.pagination import PaginationParams, keyed_page, paginate, pagination_params

router = APIRouter()


async def get_user_or_404(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id) if is_valid_uuid(user_id) else None
    if not user:
        raise ResourceNotFoundError("User", user_id)
    return user


async def ensure_unique_identity(
    db: AsyncSession,
    email: Optional[str],
    username: Optional[str],
    exclude_id: Optional[str] = None
):
    conditions = []
    if email:
        conditions.append(User.email == email)
    if username:
        conditions.append(User.username == username)
    if not conditions:
        return

    query = select(User.id).where(or_(*conditions))
    if exclude_id:
        query = query.where(User.id != exclude_id)
    if (await db.execute(query.limit(1))).scalar_one_or_none():
        raise ConflictError("User with this email or username already exists")


@router.get("", response_model=UserPage)
async def list_users(
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    pagination: PaginationParams = Depends(pagination_params),
    auth: AuthContext = Depends(Authorize(Resource.USER, Action.LIST)),
    db: AsyncSession = Depends(get_db)
):
    """List accounts (Admin)"""
    query = select(User)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            User.username.ilike(pattern),
            User.email.ilike(pattern),
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.institution.ilike(pattern),
        ))
    if role:
        query = query.where(User.role == role)
    if is_active is not None:
        query = query.where(User.is_active.is_(is_active))

    page = await paginate(db, query.order_by(User.created_at.desc()), pagination.page, pagination.page_size)
    return keyed_page(page, "users")


@router.get("/stats", response_model=UserStats)
async def user_stats(
    auth: AuthContext = Depends(Authorize(Resource.USER, Action.LIST)),
    db: AsyncSession = Depends(get_db)
):
    total = await db.scalar(select(func.count(User.id))) or 0
    active = await db.scalar(select(func.count(User.id)).where(User.is_active.is_(True))) or 0

    by_role = {role.value: 0 for role in UserRole}
    rows = await db.execute(select(User.role, func.count(User.id)).group_by(User.role))
    for role, count in rows.all():
        by_role[role.value] = count

    recent = (await db.execute(
        select(User).order_by(User.created_at.desc()).limit(5)
    )).scalars().all()

    return UserStats(
        total=total,
        active=active,
        inactive=total - active,
        by_role=by_role,
        recent=[UserResponse.model_validate(u) for u in recent],
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: Request,
    user_data: UserCreate,
    auth: AuthContext = Depends(Authorize(Resource.USER, Action.CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """Create an account of any role (Admin)"""
    await ensure_unique_identity(db, user_data.email, user_data.username)

    user = User(
        **user_data.model_dump(exclude={"password"}),
        hashed_password=get_password_hash(user_data.password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user.email} ({user.role.value}) created by {auth.user_id}")

    response = UserResponse.model_validate(user)
    await record_activity(
        db, ActivityAction.CREATE_USER,
        user_id=auth.user_id, target_type="User", target_id=user.id,
        description=f"Created user: {user.email}",
        metadata={"role": user.role.value},
        request=request,
    )
    return response


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    request: Request,
    user_id: str,
    user_data: UserUpdate,
    auth: AuthContext = Depends(Authorize(Resource.USER, Action.UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    user = await get_user_or_404(db, user_id)
    updates = user_data.model_dump(exclude_unset=True, exclude_none=True)
    await ensure_unique_identity(db, updates.get("email"), updates.get("username"), exclude_id=user.id)

    if user.id == auth.user_id and updates.get("is_active") is False:
        raise ValidationError("You cannot deactivate your own account", field="is_active")

    for field, value in updates.items():
        setattr(user, field, value)
    await db.commit()
    await db.refresh(user)

    response = UserResponse.model_validate(user)
    await record_activity(
        db, ActivityAction.UPDATE_USER,
        user_id=auth.user_id, target_type="User", target_id=user.id,
        description=f"Updated user: {user.email}",
        changes=updates.keys(),
        request=request,
    )
    return response


@router.delete("/{user_id}", response_model=MessageResponse)
async def deactivate_user(
    request: Request,
    user_id: str,
    auth: AuthContext = Depends(Authorize(Resource.USER, Action.DELETE)),
    db: AsyncSession = Depends(get_db)
):
    """Deactivate an account; rows owned by the user are kept"""
    user = await get_user_or_404(db, user_id)
    if user.id == auth.user_id:
        raise ValidationError("You cannot deactivate your own account")

    user.is_active = False
    user.refresh_token = None
    await db.commit()

    await record_activity(
        db, ActivityAction.DELETE_USER,
        user_id=auth.user_id, target_type="User", target_id=user.id,
        description=f"Deactivated user: {user.email}",
        request=request,
    )
    return MessageResponse(message="User deactivated successfully")
