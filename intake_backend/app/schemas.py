from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


# =========================
# Uploads
# =========================
class UploadResponse(BaseModel):
    success: bool = True
    fileUrl: str


# =========================
# Deletion
# =========================
class DeleteRequest(BaseModel):
    # optional so a missing name is answered with our own 400, not a 422
    fileName: Optional[str] = Field(None, description="Stored name returned by /upload")


class MessageResponse(BaseModel):
    success: bool
    message: str


# =========================
# Health
# =========================
class HealthOut(BaseModel):
    storage: str
    max_upload_bytes: int
    allowed_content_types: List[str]
