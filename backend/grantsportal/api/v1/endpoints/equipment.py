from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from typing import Any, Dict, Optional

from grantsportal.core.database import get_db
from grantsportal.core.exceptions import ResourceNotFoundError
from grantsportal.core.policy import Action, Resource
from grantsportal.core.types import is_valid_uuid
from grantsportal.models import ActivityAction, AvailabilityStatus, Equipment
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.schemas.common import MessageResponse
from grantsportal.schemas.equipment import (
    EquipmentCreate,
    EquipmentPage,
    EquipmentResponse,
    EquipmentUpdate,
)
from grantsportal.services.activity_log import record_activity
from grantsportal.utils.pagination import PaginationParams, keyed_page, paginate, pagination_params

router = APIRouter()


def equipment_columns(data: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten the nested specifications/location/availability payload onto table columns"""
    columns = dict(data)
    columns.update(columns.pop("specifications", None) or {})
    columns.update(columns.pop("location", None) or {})

    availability = columns.pop("availability", None)
    if availability:
        if "status" in availability:
            columns["availability_status"] = availability["status"]
        if "access_type" in availability:
            columns["access_type"] = availability["access_type"]
    return columns


async def get_equipment_or_404(db: AsyncSession, equipment_id: str) -> Equipment:
    equipment = await db.get(Equipment, equipment_id) if is_valid_uuid(equipment_id) else None
    if not equipment:
        raise ResourceNotFoundError("Equipment", equipment_id)
    return equipment


@router.get("", response_model=EquipmentPage)
async def list_equipment(
    search: Optional[str] = None,
    category: Optional[str] = None,
    institution: Optional[str] = None,
    state: Optional[str] = None,
    availability: Optional[AvailabilityStatus] = None,
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    pagination: PaginationParams = Depends(pagination_params),
    db: AsyncSession = Depends(get_db)
):
    """Browse the equipment inventory"""
    query = select(Equipment)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            Equipment.name.ilike(pattern),
            Equipment.description.ilike(pattern),
            Equipment.model.ilike(pattern),
            Equipment.manufacturer.ilike(pattern),
        ))
    if category:
        query = query.where(Equipment.category == category)
    if institution:
        query = query.where(Equipment.institution == institution)
    if state:
        query = query.where(Equipment.state == state)
    if availability:
        query = query.where(Equipment.availability_status == availability)

    order = Equipment.created_at.asc() if sort_order == "asc" else Equipment.created_at.desc()
    page = await paginate(db, query.order_by(order), pagination.page, pagination.page_size)
    return keyed_page(page, "equipment")


@router.get("/{equipment_id}", response_model=EquipmentResponse)
async def get_equipment(equipment_id: str, db: AsyncSession = Depends(get_db)):
    return await get_equipment_or_404(db, equipment_id)


@router.post("", response_model=EquipmentResponse, status_code=status.HTTP_201_CREATED)
async def create_equipment(
    request: Request,
    equipment_data: EquipmentCreate,
    auth: AuthContext = Depends(Authorize(Resource.EQUIPMENT, Action.CREATE)),
    db: AsyncSession = Depends(get_db)
):
    equipment = Equipment(
        **equipment_columns(equipment_data.model_dump()),
        created_by=auth.user_id,
    )
    db.add(equipment)
    await db.commit()
    await db.refresh(equipment)

    response = EquipmentResponse.model_validate(equipment)
    await record_activity(
        db, ActivityAction.CREATE_EQUIPMENT,
        user_id=auth.user_id, target_type="Equipment", target_id=equipment.id,
        description=f"Created equipment: {equipment.name}",
        request=request,
    )
    return response


@router.put("/{equipment_id}", response_model=EquipmentResponse)
async def update_equipment(
    request: Request,
    equipment_id: str,
    equipment_data: EquipmentUpdate,
    auth: AuthContext = Depends(Authorize(Resource.EQUIPMENT, Action.UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    equipment = await get_equipment_or_404(db, equipment_id)

    updates = equipment_columns(equipment_data.model_dump(exclude_unset=True))
    for field, value in updates.items():
        setattr(equipment, field, value)
    await db.commit()
    await db.refresh(equipment)

    response = EquipmentResponse.model_validate(equipment)
    await record_activity(
        db, ActivityAction.UPDATE_EQUIPMENT,
        user_id=auth.user_id, target_type="Equipment", target_id=equipment.id,
        description=f"Updated equipment: {equipment.name}",
        changes=updates.keys(),
        request=request,
    )
    return response


@router.delete("/{equipment_id}", response_model=MessageResponse)
async def delete_equipment(
    request: Request,
    equipment_id: str,
    auth: AuthContext = Depends(Authorize(Resource.EQUIPMENT, Action.DELETE)),
    db: AsyncSession = Depends(get_db)
):
    equipment = await get_equipment_or_404(db, equipment_id)
    name = equipment.name

    await db.delete(equipment)
    await db.commit()

    await record_activity(
        db, ActivityAction.DELETE_EQUIPMENT,
        user_id=auth.user_id, target_type="Equipment", target_id=equipment_id,
        description=f"Deleted equipment: {name}",
        request=request,
    )
    return MessageResponse(message="Equipment deleted successfully")
