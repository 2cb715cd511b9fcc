"""
Online applications: the public proposal form and its review queue.

Submission is anonymous and only accepted while the application window on
the settings row is open.
"""
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import FileResponse, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, update
from datetime import datetime
from typing import Optional
import csv
import io

from grantsportal.core.database import get_db
from grantsportal.core.exceptions import ResourceNotFoundError, ValidationError
from grantsportal.core.logging_config import logger
from grantsportal.core.policy import Action, Resource
from grantsportal.core.types import is_valid_uuid
from grantsportal.models import ActivityAction, ApplicationStatus, OnlineApplication
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.schemas.common import MessageResponse
from grantsportal.schemas.online_application import (
    ApplicationStats,
    BulkStatusUpdate,
    OnlineApplicationPage,
    OnlineApplicationResponse,
    StatusUpdate,
    SubmissionReceipt,
)
from grantsportal.schemas.settings import ApplicationWindow, ApplicationWindowUpdate
from grantsportal.services.activity_log import record_activity
from grantsportal.services.settings_service import (
    application_window,
    applications_open,
    get_settings,
    update_application_window,
)
from grantsportal.services.storage import (
    APPLICATION_FILES,
    file_exists,
    remove_file,
    resolve_stored_path,
    save_upload,
)
from grantsportal.utils.pagination import PaginationParams, keyed_page, paginate, pagination_params

router = APIRouter()

DOCUMENT_TYPES = ("supporting_documents", "supportingDocuments")


async def get_application_or_404(db: AsyncSession, application_id: str) -> OnlineApplication:
    application = await db.get(OnlineApplication, application_id) if is_valid_uuid(application_id) else None
    if not application:
        raise ResourceNotFoundError("Application", application_id)
    return application


def _parse_number(value: str, cast, field: str):
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid value for {field}", field=field)


# ========== Public routes ==========

@router.post("", response_model=SubmissionReceipt, status_code=status.HTTP_201_CREATED)
async def submit_application(
    request: Request,
    applicant_name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    organization: Optional[str] = Form(None),
    designation: Optional[str] = Form(None),
    scheme: Optional[str] = Form(None),
    discipline: Optional[str] = Form(None),
    project_title: Optional[str] = Form(None),
    project_description: Optional[str] = Form(None),
    duration: Optional[str] = Form(None),
    budget: Optional[str] = Form(None),
    co_investigators: Optional[str] = Form(None),
    expected_outcomes: Optional[str] = Form(None),
    supporting_documents: Optional[UploadFile] = File(None),
    auth: AuthContext = Depends(Authorize(Resource.ONLINE_APPLICATION, Action.CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """Submit a proposal (multipart form, optional supporting document)"""
    required = (
        applicant_name, email, phone, organization, designation, scheme, discipline,
        project_title, project_description, duration, budget, expected_outcomes,
    )
    if not all(value and value.strip() for value in required):
        raise ValidationError("All required fields must be provided")

    portal_settings = await get_settings(db)
    if not applications_open(portal_settings):
        raise ValidationError(portal_settings.application_message or "Applications are currently closed")

    application = OnlineApplication(
        applicant_name=applicant_name.strip(),
        email=email.strip(),
        phone=phone.strip(),
        organization=organization.strip(),
        designation=designation.strip(),
        scheme=scheme.strip(),
        discipline=discipline.strip(),
        project_title=project_title.strip(),
        project_description=project_description,
        duration=_parse_number(duration, int, "duration"),
        budget=_parse_number(budget, float, "budget"),
        co_investigators=co_investigators or "",
        expected_outcomes=expected_outcomes,
        status=ApplicationStatus.PENDING,
    )

    if supporting_documents is not None and supporting_documents.filename:
        meta = await save_upload(supporting_documents, APPLICATION_FILES, field_name="supportingDocuments")
        application.supporting_documents = meta["filename"]
        application.supporting_documents_name = meta["original_name"]
        application.supporting_documents_type = meta["mimetype"]

    db.add(application)
    await db.commit()
    await db.refresh(application)

    logger.info(f"[OnlineApplication] '{application.project_title}' submitted by {application.email}")

    response = SubmissionReceipt(message="Application submitted successfully", application_id=application.id)
    await record_activity(
        db, ActivityAction.SUBMIT_APPLICATION,
        user_id=auth.user_id, target_type="OnlineApplication", target_id=application.id,
        description=f"Application submitted: {application.project_title}",
        metadata={"applicant_email": application.email},
        request=request,
    )
    return response


@router.get("/settings", response_model=ApplicationWindow)
async def get_application_settings(db: AsyncSession = Depends(get_db)):
    """Whether the application window is open, and its dates"""
    row = await get_settings(db)
    await db.commit()
    return ApplicationWindow(**application_window(row))


@router.put("/settings", response_model=ApplicationWindow)
async def update_application_settings(
    request: Request,
    data: ApplicationWindowUpdate,
    auth: AuthContext = Depends(Authorize(Resource.APPLICATION_SETTINGS, Action.UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    row = await get_settings(db)
    changes = update_application_window(row, data.model_dump(exclude_unset=True), auth.user_id)
    await db.commit()
    await db.refresh(row)

    response = ApplicationWindow(**application_window(row))
    await record_activity(
        db, ActivityAction.UPDATE_SETTINGS,
        user_id=auth.user_id, target_type="Settings", target_id=row.id,
        description="Updated online application settings",
        changes=changes,
        request=request,
    )
    return response


# ========== Review routes (Admin, Validator) ==========

@router.get("", response_model=OnlineApplicationPage)
async def list_applications(
    application_status: Optional[str] = Query(None, alias="status"),
    scheme: Optional[str] = None,
    discipline: Optional[str] = None,
    search: Optional[str] = None,
    pagination: PaginationParams = Depends(pagination_params),
    auth: AuthContext = Depends(Authorize(Resource.ONLINE_APPLICATION, Action.LIST)),
    db: AsyncSession = Depends(get_db)
):
    """List applications; ``all`` disables a filter"""
    query = select(OnlineApplication)
    if application_status and application_status != "all":
        try:
            query = query.where(OnlineApplication.status == ApplicationStatus(application_status))
        except ValueError:
            raise ValidationError(f"Invalid status: {application_status}", field="status")
    if scheme and scheme != "all":
        query = query.where(OnlineApplication.scheme == scheme)
    if discipline and discipline != "all":
        query = query.where(OnlineApplication.discipline == discipline)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            OnlineApplication.applicant_name.ilike(pattern),
            OnlineApplication.project_title.ilike(pattern),
            OnlineApplication.organization.ilike(pattern),
        ))

    query = query.order_by(OnlineApplication.submitted_at.desc())
    page = await paginate(db, query, pagination.page, pagination.page_size)
    return keyed_page(page, "applications")


@router.get("/stats", response_model=ApplicationStats)
async def application_stats(
    auth: AuthContext = Depends(Authorize(Resource.ONLINE_APPLICATION, Action.LIST)),
    db: AsyncSession = Depends(get_db)
):
    by_status = {s.value: 0 for s in ApplicationStatus}
    rows = await db.execute(
        select(OnlineApplication.status, func.count(OnlineApplication.id))
        .group_by(OnlineApplication.status)
    )
    for application_status, count in rows.all():
        by_status[application_status.value] = count

    recent = (await db.execute(
        select(OnlineApplication).order_by(OnlineApplication.submitted_at.desc()).limit(5)
    )).scalars().all()

    return ApplicationStats(
        total=sum(by_status.values()),
        by_status=by_status,
        recent=[OnlineApplicationResponse.model_validate(a) for a in recent],
    )


@router.post("/export")
async def export_applications(
    request: Request,
    auth: AuthContext = Depends(Authorize(Resource.ONLINE_APPLICATION, Action.EXPORT)),
    db: AsyncSession = Depends(get_db)
):
    """Export every application to CSV"""
    result = await db.execute(select(OnlineApplication).order_by(OnlineApplication.submitted_at.desc()))
    applications = result.scalars().all()

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([
        "Name", "Email", "Organization", "Scheme", "Discipline",
        "Project Title", "Status", "Submitted Date"
    ])
    for application in applications:
        writer.writerow([
            application.applicant_name,
            application.email,
            application.organization,
            application.scheme,
            application.discipline,
            application.project_title,
            application.status.value,
            application.submitted_at.strftime("%Y-%m-%d") if application.submitted_at else "",
        ])
    output.seek(0)

    await record_activity(
        db, ActivityAction.DATA_EXPORT,
        user_id=auth.user_id, target_type="OnlineApplication",
        description=f"Exported {len(applications)} online applications",
        request=request,
    )

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=online_applications.csv"}
    )


@router.put("/bulk-update", response_model=MessageResponse)
async def bulk_update_status(
    request: Request,
    data: BulkStatusUpdate,
    auth: AuthContext = Depends(Authorize(Resource.ONLINE_APPLICATION, Action.UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    """Set one status (and comment) on many applications"""
    ids = [application_id for application_id in data.application_ids if is_valid_uuid(application_id)]
    result = await db.execute(
        update(OnlineApplication)
        .where(OnlineApplication.id.in_(ids))
        .values(
            status=data.status,
            comments=data.comments,
            reviewed_by=auth.user_id,
            reviewed_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session="fetch")
    )
    await db.commit()
    updated = result.rowcount or 0

    await record_activity(
        db, ActivityAction.BULK_UPDATE,
        user_id=auth.user_id, target_type="OnlineApplication",
        description=f"{updated} applications status changed to {data.status.value}",
        metadata={"application_ids": ids, "status": data.status.value},
        request=request,
    )
    return MessageResponse(message=f"{updated} applications updated successfully")


@router.get("/{application_id}", response_model=OnlineApplicationResponse)
async def get_application(
    application_id: str,
    auth: AuthContext = Depends(Authorize(Resource.ONLINE_APPLICATION, Action.READ)),
    db: AsyncSession = Depends(get_db)
):
    return await get_application_or_404(db, application_id)


@router.put("/{application_id}/status", response_model=OnlineApplicationResponse)
async def update_application_status(
    request: Request,
    application_id: str,
    data: StatusUpdate,
    auth: AuthContext = Depends(Authorize(Resource.ONLINE_APPLICATION, Action.UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    application = await get_application_or_404(db, application_id)
    previous = application.status

    application.status = data.status
    if data.comments is not None:
        application.comments = data.comments
    application.reviewed_by = auth.user_id
    application.reviewed_at = datetime.utcnow()
    await db.commit()
    await db.refresh(application)

    response = OnlineApplicationResponse.model_validate(application)
    await record_activity(
        db, ActivityAction.UPDATE_APPLICATION,
        user_id=auth.user_id, target_type="OnlineApplication", target_id=application.id,
        description=f"Application status changed from {previous.value} to {data.status.value}",
        changes=["status"] + (["comments"] if data.comments is not None else []),
        request=request,
    )
    return response


@router.delete("/{application_id}", response_model=MessageResponse)
async def delete_application(
    request: Request,
    application_id: str,
    auth: AuthContext = Depends(Authorize(Resource.ONLINE_APPLICATION, Action.DELETE)),
    db: AsyncSession = Depends(get_db)
):
    """Delete an application and its stored document"""
    application = await get_application_or_404(db, application_id)
    title = application.project_title

    if application.supporting_documents:
        await remove_file(resolve_stored_path(APPLICATION_FILES, application.supporting_documents))

    await db.delete(application)
    await db.commit()

    await record_activity(
        db, ActivityAction.DELETE_APPLICATION,
        user_id=auth.user_id, target_type="OnlineApplication", target_id=application_id,
        description=f"Deleted application: {title}",
        request=request,
    )
    return MessageResponse(message="Application deleted successfully")


@router.get("/{application_id}/download/{document_type}")
async def download_application_document(
    application_id: str,
    document_type: str,
    auth: AuthContext = Depends(Authorize(Resource.ONLINE_APPLICATION, Action.READ)),
    db: AsyncSession = Depends(get_db)
):
    application = await get_application_or_404(db, application_id)
    if document_type not in DOCUMENT_TYPES or not application.supporting_documents:
        raise ResourceNotFoundError("Document", document_type)

    path = resolve_stored_path(APPLICATION_FILES, application.supporting_documents)
    if not await file_exists(path):
        raise ResourceNotFoundError("File", application.supporting_documents)

    return FileResponse(
        path,
        media_type=application.supporting_documents_type or "application/octet-stream",
        filename=application.supporting_documents_name or application.supporting_documents,
    )
