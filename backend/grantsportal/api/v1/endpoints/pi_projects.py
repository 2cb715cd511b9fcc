from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from datetime import datetime
from typing import List, Optional

from grantsportal.core.config import settings
from grantsportal.core.database import get_db
from grantsportal.core.exceptions import (
    AuthorizationError,
    FileUploadError,
    ResourceNotFoundError,
    ValidationError,
)
from grantsportal.core.logging_config import logger
from grantsportal.core.policy import Action, Decision, Resource
from grantsportal.core.types import is_valid_uuid
from grantsportal.models import (
    ActivityAction, PIProject, PIProjectStatus, PIProjectType, ReviewStatus,
)
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.schemas.pi_project import (
    PIProjectCreate,
    PIProjectPage,
    PIProjectResponse,
    PIProjectStats,
    PIProjectUpdate,
    ProgressReportCreate,
    ReviewCreate,
)
from grantsportal.services.activity_log import record_activity
from grantsportal.services.storage import PI_PROJECT_FILES, remove_file, save_upload
from grantsportal.utils.pagination import PaginationParams, keyed_page, paginate, pagination_params

router = APIRouter()

# Review outcome -> project status
REVIEW_STATUS_MAP = {
    ReviewStatus.APPROVED: PIProjectStatus.APPROVED,
    ReviewStatus.REJECTED: PIProjectStatus.CANCELLED,
    ReviewStatus.NEEDS_REVISION: PIProjectStatus.DRAFT,
}

ACTIVE_STATUSES = (PIProjectStatus.APPROVED, PIProjectStatus.IN_PROGRESS)


async def get_pi_project(db: AsyncSession, decision: Decision, project_id: str) -> PIProject:
    """Load a PI project; 404 when missing, 403 when owned by another PI"""
    project = await db.get(PIProject, project_id) if is_valid_uuid(project_id) else None
    if not project:
        raise ResourceNotFoundError("PI project", project_id)
    if not decision.permits(project):
        raise AuthorizationError("Access denied")
    return project


def filtered_pi_projects(
    query,
    search: Optional[str] = None,
    project_status: Optional[PIProjectStatus] = None,
    project_type: Optional[PIProjectType] = None,
    review_status: Optional[ReviewStatus] = None,
):
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            PIProject.project_title.ilike(pattern),
            PIProject.project_description.ilike(pattern),
            PIProject.pi_name.ilike(pattern),
            PIProject.funding_agency.ilike(pattern),
        ))
    if project_status:
        query = query.where(PIProject.project_status == project_status)
    if project_type:
        query = query.where(PIProject.project_type == project_type)
    if review_status:
        query = query.where(PIProject.review_status == review_status)
    return query.order_by(PIProject.created_at.desc())


@router.get("", response_model=PIProjectPage)
async def list_pi_projects(
    search: Optional[str] = None,
    project_status: Optional[PIProjectStatus] = None,
    project_type: Optional[PIProjectType] = None,
    review_status: Optional[ReviewStatus] = None,
    pagination: PaginationParams = Depends(pagination_params),
    auth: AuthContext = Depends(Authorize(Resource.PI_PROJECT, Action.LIST)),
    db: AsyncSession = Depends(get_db)
):
    """Every PI project (Admin)"""
    query = filtered_pi_projects(select(PIProject), search, project_status, project_type, review_status)
    page = await paginate(db, query, pagination.page, pagination.page_size)
    return keyed_page(page, "projects")


@router.get("/my-projects", response_model=PIProjectPage)
async def list_my_pi_projects(
    search: Optional[str] = None,
    project_status: Optional[PIProjectStatus] = None,
    project_type: Optional[PIProjectType] = None,
    pagination: PaginationParams = Depends(pagination_params),
    auth: AuthContext = Depends(Authorize(Resource.PI_PROJECT, Action.LIST_OWN)),
    db: AsyncSession = Depends(get_db)
):
    """The calling PI's own projects"""
    query = filtered_pi_projects(auth.decision.apply(select(PIProject)), search, project_status, project_type)
    page = await paginate(db, query, pagination.page, pagination.page_size)
    return keyed_page(page, "projects")


@router.get("/stats", response_model=PIProjectStats)
async def pi_project_stats(
    auth: AuthContext = Depends(Authorize(Resource.PI_PROJECT, Action.READ)),
    db: AsyncSession = Depends(get_db)
):
    """Totals over every project for Admins, over their own for PIs"""
    scoped = auth.decision.apply
    count = select(func.count(PIProject.id))

    return PIProjectStats(
        total_projects=await db.scalar(scoped(count)) or 0,
        active_projects=await db.scalar(scoped(count.where(PIProject.project_status.in_(ACTIVE_STATUSES)))) or 0,
        completed_projects=await db.scalar(scoped(
            count.where(PIProject.project_status == PIProjectStatus.COMPLETED)
        )) or 0,
        pending_review=await db.scalar(scoped(count.where(PIProject.review_status == ReviewStatus.PENDING))) or 0,
        total_budget=float(await db.scalar(scoped(
            select(func.coalesce(func.sum(PIProject.total_budget), 0))
        )) or 0),
    )


@router.get("/{project_id}", response_model=PIProjectResponse)
async def get_pi_project_detail(
    project_id: str,
    auth: AuthContext = Depends(Authorize(Resource.PI_PROJECT, Action.READ)),
    db: AsyncSession = Depends(get_db)
):
    return await get_pi_project(db, auth.decision, project_id)


@router.post("", response_model=PIProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_pi_project(
    request: Request,
    project_data: PIProjectCreate,
    auth: AuthContext = Depends(Authorize(Resource.PI_PROJECT, Action.CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """Create a project report; PI details are copied from the caller's account"""
    user = auth.user
    data = project_data.model_dump(mode="json")
    for field in ("start_date", "end_date", "project_status", "project_type"):
        data[field] = getattr(project_data, field)

    project = PIProject(
        **data,
        pi_id=user.id,
        pi_name=user.full_name,
        pi_email=user.email,
        pi_institution=user.institution,
        last_updated_by=user.id,
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)

    logger.info(f"[PIProject] Created '{project.project_title}' by {user.email}")

    response = PIProjectResponse.model_validate(project)
    await record_activity(
        db, ActivityAction.CREATE_PI_PROJECT,
        user_id=auth.user_id, target_type="PIProject", target_id=project.id,
        description=f"Created PI project: {project.project_title}",
        request=request,
    )
    return response


@router.put("/{project_id}", response_model=PIProjectResponse)
async def update_pi_project(
    request: Request,
    project_id: str,
    project_data: PIProjectUpdate,
    auth: AuthContext = Depends(Authorize(Resource.PI_PROJECT, Action.UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    project = await get_pi_project(db, auth.decision, project_id)

    updates = project_data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
    for field in ("start_date", "end_date", "project_status", "project_type", "state"):
        if field in updates:
            updates[field] = getattr(project_data, field)

    start = updates.get("start_date", project.start_date)
    end = updates.get("end_date", project.end_date)
    if end < start:
        raise ValidationError("End date must be after start date", field="end_date")

    for field, value in updates.items():
        setattr(project, field, value)
    project.last_updated_by = auth.user_id
    await db.commit()
    await db.refresh(project)

    response = PIProjectResponse.model_validate(project)
    await record_activity(
        db, ActivityAction.UPDATE_PI_PROJECT,
        user_id=auth.user_id, target_type="PIProject", target_id=project.id,
        description=f"Updated PI project: {project.project_title}",
        changes=updates.keys(),
        request=request,
    )
    return response


@router.post("/{project_id}/documents", response_model=PIProjectResponse)
async def upload_pi_project_documents(
    request: Request,
    project_id: str,
    files: List[UploadFile] = File(...),
    document_type: str = Form("Other"),
    auth: AuthContext = Depends(Authorize(Resource.PI_PROJECT, Action.SUBMIT)),
    db: AsyncSession = Depends(get_db)
):
    """Attach documents to the caller's own project"""
    project = await get_pi_project(db, auth.decision, project_id)
    if len(files) > settings.MAX_FILES_PER_UPLOAD:
        raise FileUploadError(f"At most {settings.MAX_FILES_PER_UPLOAD} files can be uploaded at once")

    stored = []
    try:
        for upload in files:
            stored.append(await save_upload(upload, PI_PROJECT_FILES, field_name="document"))
    except FileUploadError:
        for meta in stored:
            await remove_file(meta["path"])
        raise

    documents = [
        {
            "name": meta["original_name"],
            "type": document_type,
            "filename": meta["filename"],
            "file_path": meta["path"],
            "mimetype": meta["mimetype"],
            "size": meta["size"],
            "uploaded_at": meta["uploaded_at"],
        }
        for meta in stored
    ]
    project.documents = list(project.documents or []) + documents
    project.last_updated_by = auth.user_id
    await db.commit()
    await db.refresh(project)

    response = PIProjectResponse.model_validate(project)
    await record_activity(
        db, ActivityAction.UPLOAD_FILE,
        user_id=auth.user_id, target_type="PIProject", target_id=project.id,
        description=f"Uploaded {len(documents)} document(s)",
        metadata={"files": [d["name"] for d in documents], "document_type": document_type},
        request=request,
    )
    return response


@router.post("/{project_id}/progress-report", response_model=PIProjectResponse)
async def submit_progress_report(
    request: Request,
    project_id: str,
    report: ProgressReportCreate,
    auth: AuthContext = Depends(Authorize(Resource.PI_PROJECT, Action.SUBMIT)),
    db: AsyncSession = Depends(get_db)
):
    """Append a progress report; reports are numbered in submission order"""
    project = await get_pi_project(db, auth.decision, project_id)

    reports = list(project.progress_reports or [])
    entry = {
        **report.model_dump(mode="json"),
        "report_number": len(reports) + 1,
        "submitted_date": datetime.utcnow().isoformat(),
        "status": "Submitted",
    }
    project.progress_reports = reports + [entry]
    project.last_updated_by = auth.user_id
    await db.commit()
    await db.refresh(project)

    response = PIProjectResponse.model_validate(project)
    await record_activity(
        db, ActivityAction.SUBMIT_PROGRESS_REPORT,
        user_id=auth.user_id, target_type="PIProject", target_id=project.id,
        description=f"Submitted progress report #{entry['report_number']}",
        request=request,
    )
    return response


@router.post("/{project_id}/review", response_model=PIProjectResponse)
async def review_pi_project(
    request: Request,
    project_id: str,
    review: ReviewCreate,
    auth: AuthContext = Depends(Authorize(Resource.PI_PROJECT, Action.REVIEW)),
    db: AsyncSession = Depends(get_db)
):
    """Record the admin review; a decision also moves the project status"""
    project = await get_pi_project(db, auth.decision, project_id)

    project.review_status = review.status
    project.review_comments = review.comments
    project.review_feedback = review.feedback
    project.reviewed_by = auth.user_id
    project.review_date = datetime.utcnow()
    if review.status in REVIEW_STATUS_MAP:
        project.project_status = REVIEW_STATUS_MAP[review.status]
    project.last_updated_by = auth.user_id
    await db.commit()
    await db.refresh(project)

    response = PIProjectResponse.model_validate(project)
    await record_activity(
        db, ActivityAction.REVIEW_PI_PROJECT,
        user_id=auth.user_id, target_type="PIProject", target_id=project.id,
        description=f"Reviewed PI project: {review.status.value}",
        metadata={"project_status": project.project_status.value},
        request=request,
    )
    return response
