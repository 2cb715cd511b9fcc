"""
Activity log endpoints (Admin).

The log is append-only; there are no update or delete routes.
"""
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_, or_, true
from datetime import datetime, timedelta
from typing import Optional
import csv
import io

from grantsportal.core.database import get_db
from grantsportal.core.policy import Action, Resource
from grantsportal.models import ActivityAction, ActivityLog, User
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.schemas.activity_log import ActivityLogPage, ActivityLogResponse, ActivityLogStats
from grantsportal.services.activity_log import record_activity
from grantsportal.utils.pagination import PaginationParams, create_paginated_response, keyed_page, pagination_params

router = APIRouter()

DATE_RANGES = ("Today", "This Week", "This Month", "Last 3 Months")
EXPORT_LIMIT = 10000


def day_start(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def date_range_start(date_range: str, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    if date_range == "Today":
        return day_start(now)
    if date_range == "This Week":
        return day_start(now - timedelta(days=now.weekday()))
    if date_range == "This Month":
        return day_start(now.replace(day=1))
    return day_start(now - timedelta(days=90))


def log_conditions(
    search: Optional[str] = None,
    action: Optional[ActivityAction] = None,
    target_type: Optional[str] = None,
    user_id: Optional[str] = None,
    date_range: Optional[str] = None,
) -> list:
    conditions = []
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(or_(
            ActivityLog.target_type.ilike(pattern),
            User.email.ilike(pattern),
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
        ))
    if action:
        conditions.append(ActivityLog.action == action)
    if target_type:
        conditions.append(ActivityLog.target_type == target_type)
    if user_id:
        conditions.append(ActivityLog.user_id == user_id)
    if date_range:
        conditions.append(ActivityLog.created_at >= date_range_start(date_range))
    return conditions


def to_response(log: ActivityLog, user: Optional[User]) -> ActivityLogResponse:
    return ActivityLogResponse(
        id=log.id,
        user_id=log.user_id,
        user_name=user.full_name if user else None,
        user_email=user.email if user else None,
        action=log.action,
        target_type=log.target_type,
        target_id=log.target_id,
        details=log.details,
        ip_address=log.ip_address,
        user_agent=log.user_agent,
        created_at=log.created_at,
    )


@router.get("", response_model=ActivityLogPage)
async def list_activity_logs(
    search: Optional[str] = None,
    action: Optional[ActivityAction] = None,
    target_type: Optional[str] = None,
    user_id: Optional[str] = None,
    date_range: Optional[str] = Query(None, pattern="^(Today|This Week|This Month|Last 3 Months)$"),
    pagination: PaginationParams = Depends(pagination_params),
    auth: AuthContext = Depends(Authorize(Resource.ACTIVITY_LOG, Action.LIST)),
    db: AsyncSession = Depends(get_db)
):
    """List activity logs with filtering and pagination"""
    conditions = log_conditions(search, action, target_type, user_id, date_range)
    where = and_(*conditions) if conditions else true()

    base = select(ActivityLog, User).outerjoin(User, ActivityLog.user_id == User.id).where(where)
    total = await db.scalar(
        select(func.count(ActivityLog.id))
        .select_from(ActivityLog)
        .outerjoin(User, ActivityLog.user_id == User.id)
        .where(where)
    ) or 0

    result = await db.execute(
        base.order_by(ActivityLog.created_at.desc())
        .offset(pagination.offset)
        .limit(pagination.page_size)
    )
    items = [to_response(log, user) for log, user in result.all()]
    page = create_paginated_response(items, total, pagination.page, pagination.page_size)
    return keyed_page(page, "logs")


@router.get("/stats", response_model=ActivityLogStats)
async def activity_log_stats(
    auth: AuthContext = Depends(Authorize(Resource.ACTIVITY_LOG, Action.LIST)),
    db: AsyncSession = Depends(get_db)
):
    now = datetime.utcnow()

    async def count_since(start: Optional[datetime] = None) -> int:
        query = select(func.count(ActivityLog.id))
        if start is not None:
            query = query.where(ActivityLog.created_at >= start)
        return await db.scalar(query) or 0

    user_rows = await db.execute(
        select(User.id, User.first_name, User.last_name, User.email, func.count(ActivityLog.id).label("count"))
        .join(ActivityLog, User.id == ActivityLog.user_id)
        .group_by(User.id, User.first_name, User.last_name, User.email)
        .order_by(func.count(ActivityLog.id).desc())
        .limit(5)
    )
    action_rows = await db.execute(
        select(ActivityLog.action, func.count(ActivityLog.id).label("count"))
        .group_by(ActivityLog.action)
        .order_by(func.count(ActivityLog.id).desc())
        .limit(10)
    )

    return ActivityLogStats(
        total=await count_since(),
        today=await count_since(date_range_start("Today", now)),
        this_week=await count_since(date_range_start("This Week", now)),
        this_month=await count_since(date_range_start("This Month", now)),
        top_users=[
            {
                "user_id": row.id,
                "name": f"{row.first_name} {row.last_name}".strip(),
                "email": row.email,
                "count": row.count,
            }
            for row in user_rows
        ],
        top_actions=[{"action": row.action.value, "count": row.count} for row in action_rows],
    )


@router.get("/export")
async def export_activity_logs(
    request: Request,
    search: Optional[str] = None,
    action: Optional[ActivityAction] = None,
    target_type: Optional[str] = None,
    user_id: Optional[str] = None,
    date_range: Optional[str] = Query(None, pattern="^(Today|This Week|This Month|Last 3 Months)$"),
    auth: AuthContext = Depends(Authorize(Resource.ACTIVITY_LOG, Action.EXPORT)),
    db: AsyncSession = Depends(get_db)
):
    """Export activity logs to CSV"""
    conditions = log_conditions(search, action, target_type, user_id, date_range)
    query = select(ActivityLog, User).outerjoin(User, ActivityLog.user_id == User.id)
    if conditions:
        query = query.where(and_(*conditions))
    result = await db.execute(query.order_by(ActivityLog.created_at.desc()).limit(EXPORT_LIMIT))
    rows = result.all()

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([
        "Timestamp", "User", "Email", "Action", "Target Type",
        "Target ID", "Description", "IP Address", "User Agent"
    ])
    for log, user in rows:
        details = log.details or {}
        writer.writerow([
            log.created_at.isoformat() if log.created_at else "",
            user.full_name if user else "System",
            user.email if user else "",
            log.action.value,
            log.target_type or "",
            log.target_id or "",
            details.get("description", ""),
            log.ip_address or "",
            log.user_agent or "",
        ])
    output.seek(0)

    await record_activity(
        db, ActivityAction.DATA_EXPORT,
        user_id=auth.user_id, target_type="ActivityLog",
        description=f"Exported {len(rows)} activity log entries",
        request=request,
    )

    filename = f"activity_logs_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.csv"
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
