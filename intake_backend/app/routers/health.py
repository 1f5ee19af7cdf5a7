# intake_backend/app/routers/health.py
from __future__ import annotations

import os

from fastapi import APIRouter, Depends

from .. import schemas
from ..core.config import Settings, get_settings

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/bootcheck")
def bootcheck():
    return {"status": "starting-ok"}


@router.get("/", response_model=schemas.HealthOut)
def health(settings: Settings = Depends(get_settings)):
    root = settings.UPLOAD_DIR
    if not os.path.isdir(root):
        storage_status = "error: missing"
    elif not os.access(root, os.W_OK | os.X_OK):
        storage_status = "error: not writable"
    else:
        storage_status = "ok"

    return schemas.HealthOut(
        storage=storage_status,
        max_upload_bytes=settings.MAX_UPLOAD_BYTES,
        allowed_content_types=list(settings.ALLOWED_CONTENT_TYPES),
    )
