"""
Activity log writer
===================

Every mutating endpoint calls ``record_activity`` once its own work is
committed. The entry is written inside a SAVEPOINT; if anything goes wrong
the failure is logged at WARNING and swallowed so the request still succeeds.
"""
from typing import Any, Dict, Iterable, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from grantsportal.core.logging_config import logger
from grantsportal.models.activity_log import ActivityLog, ActivityAction


def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def build_entry(
    action: ActivityAction,
    user_id: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[str] = None,
    description: Optional[str] = None,
    changes: Optional[Iterable[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> ActivityLog:
    details: Dict[str, Any] = {}
    if description:
        details["description"] = description
    if changes:
        details["changes"] = sorted(changes)
    if metadata:
        details["metadata"] = metadata

    return ActivityLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else None,
        details=details or None,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent") if request is not None else None,
    )


async def record_activity(
    db: AsyncSession,
    action: ActivityAction,
    user_id: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[str] = None,
    description: Optional[str] = None,
    changes: Optional[Iterable[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> Optional[ActivityLog]:
    """Append an audit entry; returns None when the write failed"""
    try:
        entry = build_entry(
            action,
            user_id=user_id,
            target_type=target_type,
            target_id=target_id,
            description=description,
            changes=changes,
            metadata=metadata,
            request=request,
        )
        async with db.begin_nested():
            db.add(entry)
        await db.commit()
        return entry
    except Exception as e:  # audit trail is best-effort
        logger.log_activity_failure(
            str(getattr(action, "value", action)),
            e,
            target_type=target_type,
            target_id=str(target_id) if target_id is not None else None,
        )
        return None
