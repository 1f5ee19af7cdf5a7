from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from .. import schemas, storage
from ..core.config import Settings, get_settings
from ..errors import ErrorCode, IntakeError

logger = logging.getLogger("intake.files")

router = APIRouter(tags=["files"])


@router.post("/upload", response_model=schemas.UploadResponse)
def upload_file(
    file: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_settings),
):
    """
    Validate -> stream into the storage root -> return the public URL.
    Rejections and failures are raised as IntakeError and rendered by the
    app-level handler.
    """
    if file is None or not file.filename:
        logger.warning("No file uploaded")
        raise IntakeError(ErrorCode.MISSING_FILE)

    stored = storage.place(
        file.filename,
        file.file,
        file.content_type,
        file.size,
        root=settings.UPLOAD_DIR,
        allowed_content_types=settings.ALLOWED_CONTENT_TYPES,
        max_bytes=settings.MAX_UPLOAD_BYTES,
        random_length=settings.ID_RANDOM_LENGTH,
        max_attempts=settings.PLACE_MAX_ATTEMPTS,
        chunk_size=settings.UPLOAD_CHUNK_BYTES,
    )

    logger.info("File uploaded: %s (%d bytes, %s)", stored.name, stored.size, stored.content_type)
    return schemas.UploadResponse(fileUrl=f"{settings.PUBLIC_UPLOAD_PREFIX}/{stored.name}")


@router.delete("/delete", response_model=schemas.MessageResponse)
def delete_file(
    body: Optional[schemas.DeleteRequest] = None,
    settings: Settings = Depends(get_settings),
):
    file_name = body.fileName if body is not None else None
    if not file_name:
        logger.warning("Attempt to delete file without filename")
        raise IntakeError(ErrorCode.MISSING_NAME)

    storage.remove(file_name, root=settings.UPLOAD_DIR)

    logger.info("File deleted: %s", file_name)
    return schemas.MessageResponse(success=True, message="File deleted successfully")
