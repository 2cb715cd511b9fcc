from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, cast, String
from typing import Any, Dict, Optional, Union

from grantsportal.core.database import get_db
from grantsportal.core.exceptions import AuthorizationError, ResourceNotFoundError
from grantsportal.core.policy import Action, Decision, Resource
from grantsportal.core.types import is_valid_uuid
from grantsportal.models import ActivityAction, Publication, PublicationType
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.schemas.common import MessageResponse
from grantsportal.schemas.publication import (
    PublicationCreate,
    PublicationPage,
    PublicationResponse,
    PublicationUpdate,
)
from grantsportal.services.activity_log import record_activity
from grantsportal.utils.pagination import PaginationParams, keyed_page, paginate, pagination_params

router = APIRouter()


def publication_columns(data: Union[PublicationCreate, PublicationUpdate], exclude_unset: bool = False) -> Dict[str, Any]:
    columns = data.model_dump(mode="json", exclude_unset=exclude_unset)
    if "publication_type" in columns:
        columns["publication_type"] = data.publication_type
    if "publication_date" in columns:
        columns["publication_date"] = data.publication_date
        columns["year"] = data.publication_date.year if data.publication_date else None
    return columns


async def get_publication_or_404(db: AsyncSession, publication_id: str) -> Publication:
    publication = await db.get(Publication, publication_id) if is_valid_uuid(publication_id) else None
    if not publication:
        raise ResourceNotFoundError("Publication", publication_id)
    return publication


async def get_owned_publication(db: AsyncSession, decision: Decision, publication_id: str) -> Publication:
    publication = await get_publication_or_404(db, publication_id)
    if not decision.permits(publication):
        raise AuthorizationError("Access denied")
    return publication


@router.get("", response_model=PublicationPage)
async def list_publications(
    search: Optional[str] = None,
    publication_type: Optional[PublicationType] = None,
    year: Optional[int] = None,
    project_id: Optional[str] = None,
    pagination: PaginationParams = Depends(pagination_params),
    db: AsyncSession = Depends(get_db)
):
    query = select(Publication)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            Publication.title.ilike(pattern),
            Publication.abstract.ilike(pattern),
            Publication.doi.ilike(pattern),
            cast(Publication.authors, String).ilike(pattern),
            cast(Publication.keywords, String).ilike(pattern),
        ))
    if publication_type:
        query = query.where(Publication.publication_type == publication_type)
    if year:
        query = query.where(Publication.year == year)
    if project_id:
        query = query.where(cast(Publication.associated_projects, String).ilike(f"%{project_id}%"))

    query = query.order_by(Publication.publication_date.desc(), Publication.created_at.desc())
    page = await paginate(db, query, pagination.page, pagination.page_size)
    return keyed_page(page, "publications")


@router.get("/{publication_id}", response_model=PublicationResponse)
async def get_publication(publication_id: str, db: AsyncSession = Depends(get_db)):
    return await get_publication_or_404(db, publication_id)


@router.post("", response_model=PublicationResponse, status_code=status.HTTP_201_CREATED)
async def create_publication(
    request: Request,
    publication_data: PublicationCreate,
    auth: AuthContext = Depends(Authorize(Resource.PUBLICATION, Action.CREATE)),
    db: AsyncSession = Depends(get_db)
):
    publication = Publication(**publication_columns(publication_data), created_by=auth.user_id)
    db.add(publication)
    await db.commit()
    await db.refresh(publication)

    response = PublicationResponse.model_validate(publication)
    await record_activity(
        db, ActivityAction.CREATE_PUBLICATION,
        user_id=auth.user_id, target_type="Publication", target_id=publication.id,
        description=f"Created publication: {publication.title}",
        request=request,
    )
    return response


@router.put("/{publication_id}", response_model=PublicationResponse)
async def update_publication(
    request: Request,
    publication_id: str,
    publication_data: PublicationUpdate,
    auth: AuthContext = Depends(Authorize(Resource.PUBLICATION, Action.UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    """Update a publication (its creator or an Admin)"""
    publication = await get_owned_publication(db, auth.decision, publication_id)

    updates = publication_columns(publication_data, exclude_unset=True)
    for field, value in updates.items():
        setattr(publication, field, value)
    await db.commit()
    await db.refresh(publication)

    response = PublicationResponse.model_validate(publication)
    await record_activity(
        db, ActivityAction.UPDATE_PUBLICATION,
        user_id=auth.user_id, target_type="Publication", target_id=publication.id,
        description=f"Updated publication: {publication.title}",
        changes=updates.keys(),
        request=request,
    )
    return response


@router.delete("/{publication_id}", response_model=MessageResponse)
async def delete_publication(
    request: Request,
    publication_id: str,
    auth: AuthContext = Depends(Authorize(Resource.PUBLICATION, Action.DELETE)),
    db: AsyncSession = Depends(get_db)
):
    publication = await get_owned_publication(db, auth.decision, publication_id)
    title = publication.title

    await db.delete(publication)
    await db.commit()

    await record_activity(
        db, ActivityAction.DELETE_PUBLICATION,
        user_id=auth.user_id, target_type="Publication", target_id=publication_id,
        description=f"Deleted publication: {title}",
        request=request,
    )
    return MessageResponse(message="Publication deleted successfully")
