"""
Project attachments and patent documents.

Files live on local disk under ``<UPLOAD_DIR>/projects`` and
``<UPLOAD_DIR>/patents``; the project row keeps their metadata.
"""
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List, Optional

from grantsportal.api.v1.endpoints.projects import get_visible_project
from grantsportal.core.config import settings
from grantsportal.core.database import get_db
from grantsportal.core.exceptions import FileUploadError, ResourceNotFoundError, StorageError
from grantsportal.core.policy import Action, Resource
from grantsportal.models import ActivityAction, Project
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.schemas.common import MessageResponse
from grantsportal.services.activity_log import record_activity
from grantsportal.services.storage import (
    PATENT_FILES,
    PROJECT_FILES,
    file_exists,
    remove_file,
    resolve_stored_path,
    save_upload,
)

router = APIRouter()


def find_file(entries: List[Dict[str, Any]], filename: str) -> Optional[Dict[str, Any]]:
    return next((entry for entry in entries or [] if entry.get("filename") == filename), None)


async def stored_file_response(category: str, entry: Dict[str, Any]) -> FileResponse:
    path = resolve_stored_path(category, entry["filename"])
    if not await file_exists(path):
        raise ResourceNotFoundError("File", entry["filename"])
    return FileResponse(
        path,
        media_type=entry.get("mimetype") or "application/octet-stream",
        filename=entry.get("original_name") or entry["filename"],
    )


# ========== Project attachments ==========

@router.post("/projects/{project_id}/upload")
async def upload_project_files(
    request: Request,
    project_id: str,
    files: List[UploadFile] = File(...),
    auth: AuthContext = Depends(Authorize(Resource.PROJECT_FILE, Action.CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """Attach up to MAX_FILES_PER_UPLOAD files to a project"""
    project = await get_visible_project(db, auth.decision, project_id)
    if not files:
        raise FileUploadError("No files uploaded")
    if len(files) > settings.MAX_FILES_PER_UPLOAD:
        raise FileUploadError(f"At most {settings.MAX_FILES_PER_UPLOAD} files can be uploaded at once")

    stored = []
    try:
        for upload in files:
            stored.append(await save_upload(upload, PROJECT_FILES, field_name="files"))
    except (FileUploadError, StorageError):
        for meta in stored:
            await remove_file(meta["path"])
        raise

    project.attachments = list(project.attachments or []) + stored
    project.last_updated_by = auth.user_id
    await db.commit()

    response = {"message": "Files uploaded successfully", "files": stored}
    await record_activity(
        db, ActivityAction.UPLOAD_FILE,
        user_id=auth.user_id, target_type="Project", target_id=project.id,
        description=f"Uploaded {len(stored)} file(s) to project {project.file_number}",
        metadata={"files": [meta["original_name"] for meta in stored]},
        request=request,
    )
    return response


@router.get("/projects/{project_id}")
async def list_project_files(
    project_id: str,
    auth: AuthContext = Depends(Authorize(Resource.PROJECT_FILE, Action.LIST)),
    db: AsyncSession = Depends(get_db)
):
    project = await get_visible_project(db, auth.decision, project_id)
    return {
        "attachments": project.attachments or [],
        "patent_documents": project.patent_documents or [],
    }


@router.get("/projects/{project_id}/download/{filename}")
async def download_project_file(
    request: Request,
    project_id: str,
    filename: str,
    auth: AuthContext = Depends(Authorize(Resource.PROJECT_FILE, Action.READ)),
    db: AsyncSession = Depends(get_db)
):
    project = await get_visible_project(db, auth.decision, project_id)
    entry = find_file(project.attachments, filename)
    if entry is None:
        raise ResourceNotFoundError("File", filename)

    response = await stored_file_response(PROJECT_FILES, entry)
    await record_activity(
        db, ActivityAction.DOWNLOAD_FILE,
        user_id=auth.user_id, target_type="Project", target_id=project.id,
        description=f"Downloaded {entry.get('original_name') or filename}",
        request=request,
    )
    return response


@router.delete("/projects/{project_id}/{filename}", response_model=MessageResponse)
async def delete_project_file(
    request: Request,
    project_id: str,
    filename: str,
    auth: AuthContext = Depends(Authorize(Resource.PROJECT_FILE, Action.DELETE)),
    db: AsyncSession = Depends(get_db)
):
    project = await get_visible_project(db, auth.decision, project_id)
    entry = find_file(project.attachments, filename)
    if entry is None:
        raise ResourceNotFoundError("File", filename)

    await remove_file(resolve_stored_path(PROJECT_FILES, filename))
    project.attachments = [a for a in project.attachments if a.get("filename") != filename]
    project.last_updated_by = auth.user_id
    await db.commit()

    await record_activity(
        db, ActivityAction.DELETE_FILE,
        user_id=auth.user_id, target_type="Project", target_id=project.id,
        description=f"Deleted {entry.get('original_name') or filename}",
        request=request,
    )
    return MessageResponse(message="File deleted successfully")


# ========== Patent documents ==========

@router.post("/projects/{project_id}/patent/upload")
async def upload_patent_document(
    request: Request,
    project_id: str,
    patent_document: UploadFile = File(...),
    patent_detail: Optional[str] = Form(None),
    auth: AuthContext = Depends(Authorize(Resource.PROJECT_FILE, Action.CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """Store a patent document and record it as a patent entry of the project"""
    project = await get_visible_project(db, auth.decision, project_id)
    meta = await save_upload(patent_document, PATENT_FILES, field_name="patent")

    project.patent_documents = list(project.patent_documents or []) + [meta]
    project.patents = list(project.patents or []) + [
        {"patent_detail": patent_detail or project.patent_detail, "patent_document": meta}
    ]
    project.last_updated_by = auth.user_id
    await db.commit()

    response = {"message": "Patent document uploaded successfully", "file": meta}
    await record_activity(
        db, ActivityAction.UPLOAD_PATENT_DOCUMENT,
        user_id=auth.user_id, target_type="Project", target_id=project.id,
        description=f"Uploaded patent document {meta['original_name']}",
        request=request,
    )
    return response


@router.get("/projects/{project_id}/patent/{filename}/download")
async def download_patent_document(
    request: Request,
    project_id: str,
    filename: str,
    auth: AuthContext = Depends(Authorize(Resource.PROJECT_FILE, Action.READ)),
    db: AsyncSession = Depends(get_db)
):
    project = await get_visible_project(db, auth.decision, project_id)
    entry = find_file(project.patent_documents, filename)
    if entry is None:
        raise ResourceNotFoundError("Patent document", filename)

    response = await stored_file_response(PATENT_FILES, entry)
    await record_activity(
        db, ActivityAction.DOWNLOAD_PATENT_DOCUMENT,
        user_id=auth.user_id, target_type="Project", target_id=project.id,
        description=f"Downloaded patent document {entry.get('original_name') or filename}",
        request=request,
    )
    return response


def _without_patent(project: Project, filename: str) -> List[Dict[str, Any]]:
    return [
        patent for patent in project.patents or []
        if (patent.get("patent_document") or {}).get("filename") != filename
    ]


@router.delete("/projects/{project_id}/patent/{filename}", response_model=MessageResponse)
async def delete_patent_document(
    request: Request,
    project_id: str,
    filename: str,
    auth: AuthContext = Depends(Authorize(Resource.PROJECT_FILE, Action.DELETE)),
    db: AsyncSession = Depends(get_db)
):
    project = await get_visible_project(db, auth.decision, project_id)
    entry = find_file(project.patent_documents, filename)
    if entry is None:
        raise ResourceNotFoundError("Patent document", filename)

    await remove_file(resolve_stored_path(PATENT_FILES, filename))
    project.patent_documents = [d for d in project.patent_documents if d.get("filename") != filename]
    project.patents = _without_patent(project, filename)
    project.last_updated_by = auth.user_id
    await db.commit()

    await record_activity(
        db, ActivityAction.DELETE_PATENT_DOCUMENT,
        user_id=auth.user_id, target_type="Project", target_id=project.id,
        description=f"Deleted patent document {entry.get('original_name') or filename}",
        request=request,
    )
    return MessageResponse(message="Patent document deleted successfully")
