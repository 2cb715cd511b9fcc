"""Portal settings singleton and the online-application window stored on it"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from grantsportal.models.settings import PortalSettings

# Never leaves the server
SECRET_FIELDS = {"smtp_password"}
EXPORT_EXCLUDED = SECRET_FIELDS | {"id", "created_at", "updated_at", "last_updated_by"}


async def get_settings(db: AsyncSession) -> PortalSettings:
    """Return the settings row, creating it with defaults on first use"""
    result = await db.execute(select(PortalSettings).order_by(PortalSettings.created_at).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        row = PortalSettings()
        db.add(row)
        await db.flush()
        await db.refresh(row)
    return row


def apply_update(row: PortalSettings, data: Dict[str, Any], user_id: Optional[str]) -> list:
    changed = [field for field, value in data.items() if getattr(row, field) != value]
    for field in changed:
        setattr(row, field, data[field])
    row.last_updated_by = user_id
    return changed


async def reset_settings(db: AsyncSession, user_id: Optional[str]) -> PortalSettings:
    await db.execute(delete(PortalSettings))
    row = PortalSettings(last_updated_by=user_id)
    db.add(row)
    await db.flush()
    await db.refresh(row)
    return row


def export_settings(row: PortalSettings) -> Dict[str, Any]:
    data = {}
    for column in PortalSettings.__table__.columns:
        if column.key in EXPORT_EXCLUDED:
            continue
        value = getattr(row, column.key)
        data[column.key] = value.isoformat() if isinstance(value, datetime) else value
    return data


def application_window(row: PortalSettings) -> Dict[str, Any]:
    return {
        "is_open": applications_open(row),
        "open_date": row.application_open_date,
        "close_date": row.application_close_date,
        "auto_close": row.application_auto_close,
        "message": row.application_message,
    }


def applications_open(row: PortalSettings, now: Optional[datetime] = None) -> bool:
    """Open flag, narrowed by the open/close dates when auto close is on"""
    if not row.applications_open:
        return False
    if not row.application_auto_close:
        return True
    now = now or datetime.utcnow()
    if row.application_open_date and now < row.application_open_date:
        return False
    if row.application_close_date and now > row.application_close_date:
        return False
    return True


def update_application_window(row: PortalSettings, data: Dict[str, Any], user_id: Optional[str]) -> list:
    mapping = {
        "is_open": "applications_open",
        "open_date": "application_open_date",
        "close_date": "application_close_date",
        "auto_close": "application_auto_close",
        "message": "application_message",
    }
    return apply_update(row, {mapping[key]: value for key, value in data.items()}, user_id)
