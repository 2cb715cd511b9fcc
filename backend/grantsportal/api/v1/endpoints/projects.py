from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, cast, String
from typing import Optional

from grantsportal.core.database import get_db
from grantsportal.core.exceptions import AuthorizationError, ConflictError, ResourceNotFoundError
from grantsportal.core.logging_config import logger
from grantsportal.core.policy import Action, Decision, Resource
from grantsportal.core.types import is_valid_uuid
from grantsportal.models import ActivityAction, Project, UserRole, ValidationStatus
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.schemas.common import MessageResponse
from grantsportal.schemas.project import (
    EquipmentSyncResult,
    ProjectBase,
    ProjectCreate,
    ProjectEnvelope,
    ProjectPage,
    ProjectResponse,
    ProjectStats,
    ProjectUpdate,
)
from grantsportal.services.activity_log import record_activity
from grantsportal.services.equipment_sync import EquipmentSync, sync_project_equipment
from grantsportal.services.project_service import (
    file_number_exists,
    generate_file_number,
    legacy_investigator,
)
from grantsportal.utils.pagination import PaginationParams, keyed_page, paginate, pagination_params

router = APIRouter()

SORT_COLUMNS = {
    "created_at": Project.created_at,
    "updated_at": Project.updated_at,
    "title": Project.title,
    "file_number": Project.file_number,
    "sanction_year": Project.budget_sanction_year,
    "total_amount": Project.budget_total_amount,
}

JSON_FIELDS = (
    "equipment_sanctioned",
    "manpower_sanctioned",
    "publications",
    "patents",
)


def filtered_projects(
    query,
    search: Optional[str] = None,
    discipline: Optional[str] = None,
    scheme: Optional[str] = None,
    validation_status: Optional[ValidationStatus] = None,
    year: Optional[int] = None,
):
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            Project.title.ilike(pattern),
            Project.file_number.ilike(pattern),
            Project.project_summary.ilike(pattern),
            Project.discipline.ilike(pattern),
            Project.scheme.ilike(pattern),
            cast(Project.principal_investigators, String).ilike(pattern),
        ))
    if discipline:
        query = query.where(Project.discipline == discipline)
    if scheme:
        query = query.where(Project.scheme == scheme)
    if validation_status:
        query = query.where(Project.validation_status == validation_status)
    if year:
        query = query.where(Project.budget_sanction_year == year)
    return query


def sorted_projects(query, sort_by: str, sort_order: str):
    column = SORT_COLUMNS.get(sort_by, Project.created_at)
    return query.order_by(column.asc() if sort_order == "asc" else column.desc())


async def get_visible_project(db: AsyncSession, decision: Decision, project_id: str) -> Project:
    """Load a project the decision lets the caller see; anything else is a 404"""
    if not is_valid_uuid(project_id):
        raise ResourceNotFoundError("Project", project_id)
    result = await db.execute(decision.apply(select(Project).where(Project.id == project_id)))
    project = result.scalar_one_or_none()
    if not project:
        raise ResourceNotFoundError("Project", project_id)
    return project


def apply_project_data(project: Project, data: ProjectBase) -> list:
    """Copy the fields sent by the client onto the row; returns the changed field names"""
    sent = data.model_dump(exclude_unset=True, mode="json")
    changed = []

    for field in ("file_number", "title", "discipline", "scheme", "project_summary", "status", "patent_detail"):
        if field in sent and sent[field] is not None:
            setattr(project, field, sent[field])
            changed.append(field)

    if "principal_investigators" in sent and sent["principal_investigators"] is not None:
        project.principal_investigators = sent["principal_investigators"]
        project.pi = legacy_investigator(sent["principal_investigators"])
        changed.append("principal_investigators")

    if "co_principal_investigators" in sent and sent["co_principal_investigators"] is not None:
        project.co_principal_investigators = sent["co_principal_investigators"]
        project.co_pi = legacy_investigator(sent["co_principal_investigators"])
        changed.append("co_principal_investigators")

    for field in JSON_FIELDS:
        if field in sent and sent[field] is not None:
            setattr(project, field, sent[field])
            changed.append(field)

    if data.budget is not None:
        budget = data.budget.model_dump(exclude_unset=True)
        if "sanction_year" in budget:
            project.budget_sanction_year = budget["sanction_year"]
        if "date" in budget:
            project.budget_date = budget["date"]
        if "total_amount" in budget:
            project.budget_total_amount = budget["total_amount"]
        changed.append("budget")

    if data.validation_status is not None:
        project.validation_status = data.validation_status
        changed.append("validation_status")

    return changed


def check_validation_change(auth: AuthContext, current: ValidationStatus, requested: Optional[ValidationStatus]):
    if requested is None or requested == current:
        return
    if auth.user.role not in (UserRole.ADMIN, UserRole.VALIDATOR):
        raise AuthorizationError("Only Admin or Validator can change the validation status")


# ========== Public routes ==========

@router.get("/public", response_model=ProjectPage)
async def list_public_projects(
    search: Optional[str] = None,
    discipline: Optional[str] = None,
    scheme: Optional[str] = None,
    year: Optional[int] = None,
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    pagination: PaginationParams = Depends(pagination_params),
    db: AsyncSession = Depends(get_db)
):
    """Project directory shown on the public site"""
    query = filtered_projects(select(Project), search, discipline, scheme, None, year)
    query = sorted_projects(query, sort_by, sort_order)
    page = await paginate(db, query, pagination.page, pagination.page_size)
    return keyed_page(page, "projects")


@router.get("/public/scheme/{scheme}", response_model=ProjectPage)
async def list_public_projects_by_scheme(
    scheme: str,
    pagination: PaginationParams = Depends(pagination_params),
    db: AsyncSession = Depends(get_db)
):
    query = (
        select(Project)
        .where(Project.scheme == scheme, Project.validation_status != ValidationStatus.REJECTED)
        .order_by(Project.created_at.desc())
    )
    page = await paginate(db, query, pagination.page, pagination.page_size)
    return keyed_page(page, "projects")


@router.get("/public/{project_id}", response_model=ProjectResponse)
async def get_public_project(project_id: str, db: AsyncSession = Depends(get_db)):
    """Public project detail; rejected projects are not published"""
    project = await get_visible_project(db, Decision(allowed=True), project_id)
    if project.validation_status == ValidationStatus.REJECTED:
        raise ResourceNotFoundError("Project", project_id)
    return project


# ========== Authenticated routes ==========

@router.get("", response_model=ProjectPage)
async def list_projects(
    search: Optional[str] = None,
    discipline: Optional[str] = None,
    scheme: Optional[str] = None,
    validation_status: Optional[ValidationStatus] = None,
    year: Optional[int] = None,
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    pagination: PaginationParams = Depends(pagination_params),
    auth: AuthContext = Depends(Authorize(Resource.PROJECT, Action.LIST)),
    db: AsyncSession = Depends(get_db)
):
    """List projects; PIs only see the projects they created"""
    query = auth.decision.apply(select(Project))
    query = filtered_projects(query, search, discipline, scheme, validation_status, year)
    query = sorted_projects(query, sort_by, sort_order)
    page = await paginate(db, query, pagination.page, pagination.page_size)
    return keyed_page(page, "projects")


@router.get("/stats", response_model=ProjectStats)
async def project_stats(
    auth: AuthContext = Depends(Authorize(Resource.PROJECT, Action.LIST)),
    db: AsyncSession = Depends(get_db)
):
    """Counts by validation status and discipline over the caller's visible projects"""
    scoped = auth.decision.apply

    total = await db.scalar(scoped(select(func.count(Project.id)))) or 0

    status_rows = await db.execute(
        scoped(select(Project.validation_status, func.count(Project.id)))
        .group_by(Project.validation_status)
    )
    by_status = {s.value: 0 for s in ValidationStatus}
    for validation_status, count in status_rows.all():
        by_status[validation_status.value] = count

    discipline_rows = await db.execute(
        scoped(select(Project.discipline, func.count(Project.id).label("count")))
        .group_by(Project.discipline)
        .order_by(func.count(Project.id).desc())
    )

    return ProjectStats(
        total=total,
        by_validation_status=by_status,
        by_discipline=[
            {"discipline": discipline, "count": count}
            for discipline, count in discipline_rows.all()
        ],
    )


@router.post("/sync-equipment", response_model=EquipmentSyncResult)
async def sync_all_equipment(
    request: Request,
    auth: AuthContext = Depends(Authorize(Resource.PROJECT, Action.SYNC)),
    db: AsyncSession = Depends(get_db)
):
    """Mirror the sanctioned equipment of every project into the inventory"""
    result = await db.execute(select(Project).order_by(Project.created_at))
    projects = result.scalars().all()

    sync = EquipmentSync(db, auth.user_id)
    synced = 0
    for project in projects:
        if await sync.sync_project(project):
            synced += 1
    await db.commit()

    logger.info(
        f"[EquipmentSync] Bulk sync: {synced}/{len(projects)} projects, "
        f"{sync.created} created, {sync.linked} linked, {sync.failed} skipped"
    )

    response = EquipmentSyncResult(
        message="Equipment synchronization completed",
        synced_projects=synced,
        total_projects=len(projects),
    )
    await record_activity(
        db, ActivityAction.SYNC_EQUIPMENT,
        user_id=auth.user_id, target_type="Equipment",
        description="Synchronized project equipment into the inventory",
        metadata={"created": sync.created, "linked": sync.linked, "failed": sync.failed},
        request=request,
    )
    return response


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    auth: AuthContext = Depends(Authorize(Resource.PROJECT, Action.READ)),
    db: AsyncSession = Depends(get_db)
):
    return await get_visible_project(db, auth.decision, project_id)


@router.post("", response_model=ProjectEnvelope, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: Request,
    project_data: ProjectCreate,
    auth: AuthContext = Depends(Authorize(Resource.PROJECT, Action.CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a project.

    A missing file number is generated as ``SRG/<sanction year>/<seq>``.
    Sanctioned equipment is mirrored into the equipment inventory; a failing
    sync is logged and never aborts the creation.
    """
    check_validation_change(auth, ValidationStatus.ONGOING, project_data.validation_status)

    file_number = (project_data.file_number or "").strip()
    if file_number:
        if await file_number_exists(db, file_number):
            raise ConflictError("Project with this file number already exists", field="file_number")
    else:
        sanction_year = project_data.budget.sanction_year if project_data.budget else None
        file_number = await generate_file_number(db, sanction_year)

    project = Project(created_by=auth.user_id, last_updated_by=auth.user_id)
    apply_project_data(project, project_data)
    project.file_number = file_number
    db.add(project)
    await db.flush()

    try:
        async with db.begin_nested():
            await sync_project_equipment(db, project, auth.user_id)
    except Exception as e:
        logger.warning(f"[EquipmentSync] Sync failed for project {project.file_number}: {e}")

    await db.commit()
    await db.refresh(project)

    logger.info(f"Project created: {project.file_number} by {auth.user_id}")

    response = ProjectEnvelope(
        message="Project created successfully",
        project=ProjectResponse.model_validate(project),
    )
    await record_activity(
        db, ActivityAction.CREATE_PROJECT,
        user_id=auth.user_id, target_type="Project", target_id=project.id,
        description=f"Created project: {project.title}",
        metadata={"file_number": project.file_number},
        request=request,
    )
    return response


@router.put("/{project_id}", response_model=ProjectEnvelope)
async def update_project(
    request: Request,
    project_id: str,
    project_data: ProjectUpdate,
    auth: AuthContext = Depends(Authorize(Resource.PROJECT, Action.UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    """Update a project (Admin, Validator, or the PI who created it)"""
    project = await get_visible_project(db, auth.decision, project_id)
    check_validation_change(auth, project.validation_status, project_data.validation_status)

    new_number = project_data.file_number
    if new_number and new_number != project.file_number and await file_number_exists(db, new_number):
        raise ConflictError("Project with this file number already exists", field="file_number")

    previous_status = project.validation_status
    changes = apply_project_data(project, project_data)
    project.last_updated_by = auth.user_id
    await db.commit()
    await db.refresh(project)

    response = ProjectEnvelope(
        message="Project updated successfully",
        project=ProjectResponse.model_validate(project),
    )

    if project.validation_status != previous_status:
        await record_activity(
            db, ActivityAction.VALIDATE_PROJECT,
            user_id=auth.user_id, target_type="Project", target_id=project.id,
            description=f"Validation status changed to {project.validation_status.value}",
            metadata={"from": previous_status.value, "to": project.validation_status.value},
            request=request,
        )
    await record_activity(
        db, ActivityAction.UPDATE_PROJECT,
        user_id=auth.user_id, target_type="Project", target_id=project.id,
        description=f"Updated project: {project.title}",
        changes=changes,
        request=request,
    )
    return response


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    request: Request,
    project_id: str,
    auth: AuthContext = Depends(Authorize(Resource.PROJECT, Action.DELETE)),
    db: AsyncSession = Depends(get_db)
):
    """Delete a project (Admin, or the PI who created it)"""
    project = await get_visible_project(db, auth.decision, project_id)
    title, file_number = project.title, project.file_number

    await db.delete(project)
    await db.commit()

    await record_activity(
        db, ActivityAction.DELETE_PROJECT,
        user_id=auth.user_id, target_type="Project", target_id=project_id,
        description=f"Deleted project: {title}",
        metadata={"file_number": file_number},
        request=request,
    )
    return MessageResponse(message="Project deleted successfully")
