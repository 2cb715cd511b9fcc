"""
Local disk storage for uploaded documents.

Files land in ``<UPLOAD_DIR>/<category>/`` under a generated unique name;
the returned metadata dict is what gets stored in the owning row's JSON
column.
"""
import os
import random
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from grantsportal.core.config import settings
from grantsportal.core.exceptions import (
    FileTooLargeError,
    FileUploadError,
    InvalidFileTypeError,
    StorageError,
)
from grantsportal.core.logging_config import logger

ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
}

CHUNK_SIZE = 64 * 1024

PROJECT_FILES = "projects"
PATENT_FILES = "patents"
PI_PROJECT_FILES = "pi-projects"
APPLICATION_FILES = "online-applications"


def category_dir(category: str) -> Path:
    return Path(settings.UPLOAD_DIR) / category


def unique_filename(field_name: str, original_name: str) -> str:
    """``<field>-<epoch ms>-<random><ext>``"""
    ext = os.path.splitext(original_name or "")[1].lower()
    return f"{field_name}-{int(time.time() * 1000)}-{random.randint(0, 10 ** 9)}{ext}"


def resolve_stored_path(category: str, filename: str) -> Path:
    """Path of a stored file; rejects names that would escape the category directory"""
    if not filename or os.path.basename(filename) != filename or filename in (".", ".."):
        raise FileUploadError("Invalid filename")
    return category_dir(category) / filename


async def save_upload(
    upload: UploadFile,
    category: str,
    field_name: str = "file",
    max_size: Optional[int] = None,
) -> Dict[str, Any]:
    """Validate and write one uploaded file; returns its stored metadata"""
    max_size = max_size or settings.MAX_UPLOAD_SIZE
    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_MIME_TYPES:
        raise InvalidFileTypeError(content_type)

    directory = category_dir(category)
    try:
        await aiofiles.os.makedirs(directory, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Could not prepare upload directory: {e}")

    filename = unique_filename(field_name, upload.filename or "")
    path = directory / filename
    size = 0
    try:
        async with aiofiles.open(path, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_size:
                    raise FileTooLargeError(max_size)
                await out.write(chunk)
    except FileTooLargeError:
        await remove_file(path)
        raise
    except OSError as e:
        await remove_file(path)
        raise StorageError(f"Could not store file: {e}")

    logger.log_upload(category, upload.filename or filename, filename, size)
    return {
        "filename": filename,
        "original_name": upload.filename or filename,
        "path": str(path),
        "mimetype": content_type,
        "size": size,
        "uploaded_at": datetime.utcnow().isoformat(),
    }


async def remove_file(path) -> bool:
    """Delete a stored file; a missing file is not an error"""
    try:
        await aiofiles.os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"[Storage] Could not delete {path}: {e}")
        return False


async def file_exists(path) -> bool:
    return await aiofiles.os.path.exists(path)
