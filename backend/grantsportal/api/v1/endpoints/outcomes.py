from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from typing import Any, Dict, Optional, Union

from grantsportal.core.database import get_db
from grantsportal.core.exceptions import AuthorizationError, ResourceNotFoundError
from grantsportal.core.policy import Action, Resource
from grantsportal.core.types import is_valid_uuid
from grantsportal.models import ActivityAction, Outcome, OutcomeType, Project
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.schemas.common import MessageResponse
from grantsportal.schemas.outcome import OutcomeCreate, OutcomePage, OutcomeResponse, OutcomeUpdate
from grantsportal.services.activity_log import record_activity
from grantsportal.utils.pagination import PaginationParams, keyed_page, paginate, pagination_params

router = APIRouter()


def outcome_columns(data: Union[OutcomeCreate, OutcomeUpdate], exclude_unset: bool = False) -> Dict[str, Any]:
    columns = data.model_dump(mode="json", exclude_unset=exclude_unset)
    # JSON mode is only for the JSON columns; enum and datetime columns take the objects
    for field in ("type", "achievement_date"):
        if field in columns:
            columns[field] = getattr(data, field)
    return columns


async def get_outcome_or_404(db: AsyncSession, outcome_id: str) -> Outcome:
    outcome = await db.get(Outcome, outcome_id) if is_valid_uuid(outcome_id) else None
    if not outcome:
        raise ResourceNotFoundError("Outcome", outcome_id)
    return outcome


@router.get("", response_model=OutcomePage)
async def list_outcomes(
    project_id: Optional[str] = None,
    type: Optional[OutcomeType] = None,
    search: Optional[str] = None,
    pagination: PaginationParams = Depends(pagination_params),
    db: AsyncSession = Depends(get_db)
):
    query = select(Outcome)
    if project_id:
        query = query.where(Outcome.project_id == project_id)
    if type:
        query = query.where(Outcome.type == type)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(Outcome.title.ilike(pattern), Outcome.description.ilike(pattern)))

    query = query.order_by(Outcome.achievement_date.desc(), Outcome.created_at.desc())
    page = await paginate(db, query, pagination.page, pagination.page_size)
    return keyed_page(page, "outcomes")


@router.get("/{outcome_id}", response_model=OutcomeResponse)
async def get_outcome(outcome_id: str, db: AsyncSession = Depends(get_db)):
    return await get_outcome_or_404(db, outcome_id)


@router.post("", response_model=OutcomeResponse, status_code=status.HTTP_201_CREATED)
async def create_outcome(
    request: Request,
    outcome_data: OutcomeCreate,
    auth: AuthContext = Depends(Authorize(Resource.OUTCOME, Action.CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """Report an outcome against an existing project"""
    project = await db.get(Project, outcome_data.project_id) if is_valid_uuid(outcome_data.project_id) else None
    if not project:
        raise ResourceNotFoundError("Project", outcome_data.project_id)

    outcome = Outcome(**outcome_columns(outcome_data), created_by=auth.user_id)
    db.add(outcome)
    await db.commit()
    await db.refresh(outcome)

    response = OutcomeResponse.model_validate(outcome)
    await record_activity(
        db, ActivityAction.CREATE_OUTCOME,
        user_id=auth.user_id, target_type="Outcome", target_id=outcome.id,
        description=f"Created outcome: {outcome.title}",
        metadata={"project_id": project.id},
        request=request,
    )
    return response


@router.put("/{outcome_id}", response_model=OutcomeResponse)
async def update_outcome(
    request: Request,
    outcome_id: str,
    outcome_data: OutcomeUpdate,
    auth: AuthContext = Depends(Authorize(Resource.OUTCOME, Action.UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    outcome = await get_outcome_or_404(db, outcome_id)
    if not auth.decision.permits(outcome):
        raise AuthorizationError("Access denied")

    updates = outcome_columns(outcome_data, exclude_unset=True)
    for field, value in updates.items():
        setattr(outcome, field, value)
    await db.commit()
    await db.refresh(outcome)

    response = OutcomeResponse.model_validate(outcome)
    await record_activity(
        db, ActivityAction.UPDATE_OUTCOME,
        user_id=auth.user_id, target_type="Outcome", target_id=outcome.id,
        description=f"Updated outcome: {outcome.title}",
        changes=updates.keys(),
        request=request,
    )
    return response


@router.delete("/{outcome_id}", response_model=MessageResponse)
async def delete_outcome(
    request: Request,
    outcome_id: str,
    auth: AuthContext = Depends(Authorize(Resource.OUTCOME, Action.DELETE)),
    db: AsyncSession = Depends(get_db)
):
    outcome = await get_outcome_or_404(db, outcome_id)
    if not auth.decision.permits(outcome):
        raise AuthorizationError("Access denied")
    title = outcome.title

    await db.delete(outcome)
    await db.commit()

    await record_activity(
        db, ActivityAction.DELETE_OUTCOME,
        user_id=auth.user_id, target_type="Outcome", target_id=outcome_id,
        description=f"Deleted outcome: {title}",
        request=request,
    )
    return MessageResponse(message="Outcome deleted successfully")
