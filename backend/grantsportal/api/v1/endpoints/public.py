"""Unauthenticated aggregates for the portal homepage"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Any, Dict, Optional

from grantsportal.core.database import get_db
from grantsportal.models import Project, ValidationStatus
from grantsportal.services.analytics import (
    funding_by,
    platform_overview,
    project_publications,
    public_funding_stats,
    recent_project_summary,
)
from grantsportal.utils.pagination import PaginationParams, create_paginated_response, keyed_page, pagination_params

router = APIRouter()


@router.get("/funding-stats")
async def get_public_funding_stats(
    year: Optional[int] = Query(None, ge=1900, le=2100),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    return await public_funding_stats(db, year)


@router.get("/project-stats")
async def get_project_stats(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    """Project counts per validation status, discipline and scheme"""
    by_status = {s.value: 0 for s in ValidationStatus}
    rows = await db.execute(
        select(Project.validation_status, func.count(Project.id)).group_by(Project.validation_status)
    )
    for validation_status, count in rows.all():
        by_status[validation_status.value] = count

    return {
        "total_projects": sum(by_status.values()),
        "by_status": by_status,
        "by_discipline": await funding_by(db, Project.discipline, order_by_funding=False),
        "by_scheme": await funding_by(db, Project.scheme, order_by_funding=False),
    }


@router.get("/recent-projects")
async def get_recent_projects(
    limit: int = Query(6, ge=1, le=50),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    result = await db.execute(
        select(Project)
        .where(Project.validation_status != ValidationStatus.REJECTED)
        .order_by(Project.created_at.desc())
        .limit(limit)
    )
    return {"projects": [recent_project_summary(p) for p in result.scalars().all()]}


@router.get("/platform-overview")
async def get_platform_overview(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    return await platform_overview(db)


@router.get("/publications")
async def list_project_publications(
    search: Optional[str] = None,
    status: Optional[str] = None,
    discipline: Optional[str] = None,
    year: Optional[int] = None,
    pagination: PaginationParams = Depends(pagination_params),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """Publications recorded on projects, flattened and paginated in memory"""
    publications = await project_publications(db, search, status, discipline, year)
    start = pagination.offset
    page = create_paginated_response(
        publications[start:start + pagination.page_size],
        len(publications),
        pagination.page,
        pagination.page_size,
    )
    return keyed_page(page, "publications")
