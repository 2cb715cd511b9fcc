from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime

import aiosmtplib

from grantsportal.core.database import get_db
from grantsportal.core.exceptions import ValidationError
from grantsportal.core.logging_config import logger
from grantsportal.core.policy import Action, Resource
from grantsportal.models import ActivityAction
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.schemas.common import MessageResponse
from grantsportal.schemas.settings import EmailTestRequest, SettingsResponse, SettingsUpdate
from grantsportal.services.activity_log import record_activity
from grantsportal.services.email_service import EmailService
from grantsportal.services.settings_service import (
    apply_update,
    export_settings,
    get_settings,
    reset_settings,
)

router = APIRouter()


@router.get("", response_model=SettingsResponse)
async def read_settings(
    auth: AuthContext = Depends(Authorize(Resource.SETTINGS, Action.READ)),
    db: AsyncSession = Depends(get_db)
):
    row = await get_settings(db)
    await db.commit()
    return row


@router.put("", response_model=SettingsResponse)
async def update_settings(
    request: Request,
    data: SettingsUpdate,
    auth: AuthContext = Depends(Authorize(Resource.SETTINGS, Action.UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    row = await get_settings(db)
    changes = apply_update(row, data.model_dump(exclude_unset=True, exclude_none=True), auth.user_id)
    await db.commit()
    await db.refresh(row)

    logger.info(f"[Settings] Updated by {auth.user_id}: {', '.join(changes) or 'no changes'}")

    response = SettingsResponse.model_validate(row)
    await record_activity(
        db, ActivityAction.UPDATE_SETTINGS,
        user_id=auth.user_id, target_type="Settings", target_id=row.id,
        description="Updated system settings",
        changes=changes,
        request=request,
    )
    return response


@router.post("/test-email", response_model=MessageResponse)
async def send_test_email(
    data: EmailTestRequest,
    auth: AuthContext = Depends(Authorize(Resource.SETTINGS, Action.UPDATE)),
):
    """Send a message through the SMTP server given in the request"""
    recipient = data.recipient or auth.user.email
    service = EmailService(
        smtp_host=data.smtp_host,
        smtp_port=data.smtp_port,
        smtp_user=data.smtp_user,
        smtp_password=data.smtp_password,
        use_tls=data.smtp_secure,
    )
    try:
        await service.send_test_email(recipient)
    except (aiosmtplib.SMTPException, OSError) as e:
        logger.warning(f"[Email/SMTP] Test email to {recipient} failed: {e}")
        raise ValidationError(f"Failed to send test email: {e}")

    return MessageResponse(message=f"Test email sent successfully to {recipient}")


@router.post("/reset", response_model=SettingsResponse)
async def reset_to_defaults(
    request: Request,
    auth: AuthContext = Depends(Authorize(Resource.SETTINGS, Action.UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    row = await reset_settings(db, auth.user_id)
    await db.commit()

    response = SettingsResponse.model_validate(row)
    await record_activity(
        db, ActivityAction.RESET_SETTINGS,
        user_id=auth.user_id, target_type="Settings", target_id=row.id,
        description="Reset system settings to defaults",
        request=request,
    )
    return response


@router.get("/export")
async def download_settings(
    request: Request,
    auth: AuthContext = Depends(Authorize(Resource.SETTINGS, Action.EXPORT)),
    db: AsyncSession = Depends(get_db)
):
    """Settings as a JSON attachment, without secrets"""
    row = await get_settings(db)
    await db.commit()
    payload = {
        "exported_at": datetime.utcnow().isoformat(),
        "exported_by": auth.user.email,
        "settings": export_settings(row),
    }

    await record_activity(
        db, ActivityAction.DATA_EXPORT,
        user_id=auth.user_id, target_type="Settings", target_id=row.id,
        description="Exported system settings",
        request=request,
    )

    filename = f"settings_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.json"
    return JSONResponse(
        content=payload,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
