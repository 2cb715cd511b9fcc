"""
Aggregate figures for the analytics dashboard and the public homepage.

Project queries accept an optional SQL predicate so that the dashboard can be
computed over the caller's visible projects only.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, extract
from sqlalchemy.ext.asyncio import AsyncSession

from grantsportal.models import (
    Equipment, Outcome, Project, Publication, User, ValidationStatus,
)

FUNDING = func.coalesce(func.sum(Project.budget_total_amount), 0)
AVG_FUNDING = func.coalesce(func.avg(Project.budget_total_amount), 0)


def _scoped(query, predicate):
    return query if predicate is None else query.where(predicate)


async def _count(db: AsyncSession, query) -> int:
    return await db.scalar(query) or 0


async def funding_by(
    db: AsyncSession,
    column,
    predicate=None,
    order_by_funding: bool = True,
) -> List[Dict[str, Any]]:
    """Project count, total and average funding grouped on ``column``"""
    query = _scoped(
        select(
            column.label("key"),
            func.count(Project.id).label("project_count"),
            FUNDING.label("total_funding"),
            AVG_FUNDING.label("avg_funding"),
        ).group_by(column),
        predicate,
    )
    query = query.order_by(FUNDING.desc() if order_by_funding else func.count(Project.id).desc())
    rows = (await db.execute(query)).all()
    return [
        {
            "key": row.key,
            "project_count": row.project_count,
            "total_funding": float(row.total_funding or 0),
            "avg_funding": float(row.avg_funding or 0),
        }
        for row in rows
    ]


async def funding_totals(db: AsyncSession, predicate=None) -> Dict[str, float]:
    row = (await db.execute(_scoped(select(FUNDING, AVG_FUNDING), predicate))).one()
    return {"total_funding": float(row[0] or 0), "avg_funding": float(row[1] or 0)}


async def funding_stats(db: AsyncSession) -> Dict[str, Any]:
    """Funding by scheme, by discipline and its trend by sanction year and month"""
    month = extract("month", Project.created_at)
    trend_rows = (await db.execute(
        select(
            Project.budget_sanction_year.label("year"),
            month.label("month"),
            FUNDING.label("total_funding"),
            func.count(Project.id).label("project_count"),
        )
        .group_by(Project.budget_sanction_year, month)
        .order_by(Project.budget_sanction_year, month)
    )).all()

    return {
        "funding_by_program": await funding_by(db, Project.scheme),
        "funding_by_discipline": await funding_by(db, Project.discipline),
        "funding_trends": [
            {
                "year": row.year,
                "month": int(row.month) if row.month is not None else None,
                "total_funding": float(row.total_funding or 0),
                "project_count": row.project_count,
            }
            for row in trend_rows
        ],
    }


async def dashboard_stats(db: AsyncSession, predicate=None) -> Dict[str, Any]:
    """Dashboard overview; project figures honour ``predicate``"""
    project_count = select(func.count(Project.id))
    totals = await funding_totals(db, predicate)

    by_year_rows = (await db.execute(_scoped(
        select(
            Project.budget_sanction_year.label("year"),
            FUNDING.label("total_funding"),
            func.count(Project.id).label("project_count"),
        ).group_by(Project.budget_sanction_year).order_by(Project.budget_sanction_year),
        predicate,
    ))).all()

    recent = (await db.execute(_scoped(
        select(Project).order_by(Project.created_at.desc()).limit(5), predicate
    ))).scalars().all()

    return {
        "overview": {
            "total_projects": await _count(db, _scoped(project_count, predicate)),
            "ongoing_projects": await _count(db, _scoped(
                project_count.where(Project.validation_status == ValidationStatus.ONGOING), predicate
            )),
            "completed_projects": await _count(db, _scoped(
                project_count.where(Project.validation_status == ValidationStatus.COMPLETED), predicate
            )),
            "total_users": await _count(db, select(func.count(User.id)).where(User.is_active.is_(True))),
            "total_publications": await _count(db, select(func.count(Publication.id))),
            "total_equipment": await _count(db, select(func.count(Equipment.id))),
            **totals,
        },
        "charts": {
            "projects_by_discipline": await funding_by(db, Project.discipline, predicate, order_by_funding=False),
            "funding_by_year": [
                {
                    "year": row.year,
                    "total_funding": float(row.total_funding or 0),
                    "project_count": row.project_count,
                }
                for row in by_year_rows
            ],
        },
        "recent_projects": [recent_project_summary(p) for p in recent],
    }


def recent_project_summary(project: Project) -> Dict[str, Any]:
    return {
        "id": project.id,
        "title": project.title,
        "file_number": project.file_number,
        "discipline": project.discipline,
        "principal_investigators": project.principal_investigators or [],
        "total_amount": project.budget_total_amount,
        "created_at": project.created_at,
    }


def _year_bounds(year: int):
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)


async def public_funding_stats(db: AsyncSession, year: Optional[int] = None) -> Dict[str, Any]:
    """Homepage funding panel"""
    year = year or datetime.utcnow().year
    start, end = _year_bounds(year)
    ongoing = Project.validation_status == ValidationStatus.ONGOING
    this_year = (Project.created_at >= start) & (Project.created_at < end)

    manpower_rows = (await db.execute(select(Project.manpower_sanctioned))).scalars().all()
    manpower = sum(
        int(item.get("number") or 0)
        for items in manpower_rows
        for item in (items or [])
    )

    received = await funding_by(db, Project.scheme, this_year, order_by_funding=False)
    return {
        "ongoing_projects": {
            "total": await _count(db, select(func.count(Project.id)).where(ongoing)),
            "programs": await funding_by(db, Project.scheme, ongoing, order_by_funding=False),
        },
        "proposals_received": {
            "total": await _count(db, select(func.count(Project.id)).where(this_year)),
            "programs": received,
        },
        "proposals_supported": {
            "total": await _count(db, select(func.count(Project.id)).where(
                this_year & (Project.validation_status != ValidationStatus.REJECTED)
            )),
            "programs": await funding_by(
                db, Project.scheme,
                this_year & (Project.validation_status != ValidationStatus.REJECTED),
                order_by_funding=False,
            ),
        },
        "project_output": {
            "publications": await _count(db, select(func.count(Publication.id))),
            "equipment": await _count(db, select(func.count(Equipment.id))),
            "manpower": manpower,
        },
        "total_funding": (await funding_totals(db))["total_funding"],
        "year": year,
    }


async def platform_overview(db: AsyncSession) -> Dict[str, Any]:
    return {
        "total_projects": await _count(db, select(func.count(Project.id))),
        "total_users": await _count(db, select(func.count(User.id)).where(User.is_active.is_(True))),
        "total_publications": await _count(db, select(func.count(Publication.id))),
        "total_equipment": await _count(db, select(func.count(Equipment.id))),
        "total_outcomes": await _count(db, select(func.count(Outcome.id))),
        "total_funding": (await funding_totals(db))["total_funding"],
    }


async def project_publications(
    db: AsyncSession,
    search: Optional[str] = None,
    status: Optional[str] = None,
    discipline: Optional[str] = None,
    year: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Publications embedded in projects, flattened with their project's details"""
    query = select(Project).order_by(Project.created_at.desc())
    if discipline:
        query = query.where(Project.discipline == discipline)
    if year:
        start, end = _year_bounds(year)
        query = query.where(Project.created_at >= start, Project.created_at < end)
    projects = (await db.execute(query)).scalars().all()

    needle = search.lower() if search else None
    flattened = []
    for project in projects:
        for publication in project.publications or []:
            if status and publication.get("status") != status:
                continue
            if needle and not any(
                needle in (value or "").lower()
                for value in (publication.get("name"), publication.get("publication_detail"), project.title)
            ):
                continue
            flattened.append({
                **publication,
                "project_id": project.id,
                "project_title": project.title,
                "project_file_number": project.file_number,
                "project_discipline": project.discipline,
                "project_scheme": project.scheme,
                "principal_investigators": project.principal_investigators or [],
                "co_principal_investigators": project.co_principal_investigators or [],
            })
    return flattened
