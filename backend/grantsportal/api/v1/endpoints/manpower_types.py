from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Any, Dict, List, Optional

from grantsportal.core.database import get_db
from grantsportal.core.policy import Action, Resource
from grantsportal.core.types import LifecycleState
from grantsportal.models import ActivityAction, ManpowerCategory, ManpowerType
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.schemas.reference import (
    Envelope,
    ManpowerTypeCreate,
    ManpowerTypeResponse,
    ManpowerTypeUpdate,
)
from grantsportal.services.activity_log import record_activity
from grantsportal.services.reference_service import manpower_type_service as service

router = APIRouter()


@router.get("", response_model=Envelope[List[ManpowerTypeResponse]])
async def list_manpower_types(
    category: Optional[ManpowerCategory] = None,
    include_disabled: bool = False,
    db: AsyncSession = Depends(get_db)
):
    state = None if include_disabled else LifecycleState.ACTIVE
    items = await service.list(db, state=state, category=category)
    return Envelope(data=[ManpowerTypeResponse.model_validate(item) for item in items])


@router.get("/stats", response_model=Envelope[Dict[str, Any]])
async def manpower_type_stats(
    auth: AuthContext = Depends(Authorize(Resource.MANPOWER_TYPE, Action.READ)),
    db: AsyncSession = Depends(get_db)
):
    total = await db.scalar(select(func.count(ManpowerType.id))) or 0
    active = await db.scalar(
        select(func.count(ManpowerType.id)).where(ManpowerType.state == LifecycleState.ACTIVE)
    ) or 0

    by_category = {c.value: 0 for c in ManpowerCategory}
    rows = await db.execute(
        select(ManpowerType.category, func.count(ManpowerType.id))
        .where(ManpowerType.state == LifecycleState.ACTIVE)
        .group_by(ManpowerType.category)
    )
    for category, count in rows.all():
        by_category[category.value] = count

    return Envelope(data={
        "total": total,
        "active": active,
        "disabled": total - active,
        "by_category": by_category,
    })


@router.get("/{item_id}", response_model=Envelope[ManpowerTypeResponse])
async def get_manpower_type(
    item_id: str,
    auth: AuthContext = Depends(Authorize(Resource.MANPOWER_TYPE, Action.READ)),
    db: AsyncSession = Depends(get_db)
):
    item = await service.get(db, item_id)
    return Envelope(data=ManpowerTypeResponse.model_validate(item))


@router.post("", response_model=Envelope[ManpowerTypeResponse], status_code=status.HTTP_201_CREATED)
async def create_manpower_type(
    request: Request,
    data: ManpowerTypeCreate,
    auth: AuthContext = Depends(Authorize(Resource.MANPOWER_TYPE, Action.CREATE)),
    db: AsyncSession = Depends(get_db)
):
    item = await service.create(db, data.model_dump(), auth.user_id)
    await db.commit()
    await db.refresh(item)

    response = Envelope(
        data=ManpowerTypeResponse.model_validate(item),
        message="Manpower type created successfully",
    )
    await record_activity(
        db, ActivityAction.CREATE_MANPOWER_TYPE,
        user_id=auth.user_id, target_type="ManpowerType", target_id=item.id,
        description=f"Created manpower type: {item.name}",
        request=request,
    )
    return response


@router.put("/{item_id}", response_model=Envelope[ManpowerTypeResponse])
async def update_manpower_type(
    request: Request,
    item_id: str,
    data: ManpowerTypeUpdate,
    auth: AuthContext = Depends(Authorize(Resource.MANPOWER_TYPE, Action.UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    item = await service.get(db, item_id)
    changes = await service.update(db, item, data.model_dump(exclude_unset=True, exclude_none=True))
    await db.commit()
    await db.refresh(item)

    response = Envelope(
        data=ManpowerTypeResponse.model_validate(item),
        message="Manpower type updated successfully",
    )
    await record_activity(
        db, ActivityAction.UPDATE_MANPOWER_TYPE,
        user_id=auth.user_id, target_type="ManpowerType", target_id=item.id,
        description=f"Updated manpower type: {item.name}",
        changes=changes.keys(),
        request=request,
    )
    return response


@router.delete("/{item_id}", response_model=Envelope[ManpowerTypeResponse])
async def delete_manpower_type(
    request: Request,
    item_id: str,
    auth: AuthContext = Depends(Authorize(Resource.MANPOWER_TYPE, Action.DELETE)),
    db: AsyncSession = Depends(get_db)
):
    """Disable a manpower type"""
    item = await service.get(db, item_id)
    await service.disable(db, item)
    await db.commit()
    await db.refresh(item)

    response = Envelope(
        data=ManpowerTypeResponse.model_validate(item),
        message="Manpower type deleted successfully",
    )
    await record_activity(
        db, ActivityAction.DELETE_MANPOWER_TYPE,
        user_id=auth.user_id, target_type="ManpowerType", target_id=item.id,
        description=f"Disabled manpower type: {item.name}",
        request=request,
    )
    return response
