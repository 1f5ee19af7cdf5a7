"""Application configuration settings.

Values can be overridden via environment variables.  They are read once,
when the process starts, and are not renegotiated afterwards.
"""
import os
from typing import Tuple

from dotenv import load_dotenv
from fastapi import Request

# values already in the environment win over the file
load_dotenv(os.getenv("INTAKE_ENV_FILE", ".env"))

# __file__ = .../intake_backend/app/core/config.py
_BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

DEFAULT_ALLOWED_CONTENT_TYPES: Tuple[str, ...] = (
    "image/png",
    "image/jpeg",
    "image/jpg",
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",  # .docx
    "application/msword",  # .doc
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",  # .xlsx
    "application/vnd.ms-excel",  # .xls
)


def _split_csv(raw: str | None) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip().lower() for part in raw.split(",") if part.strip())


class Settings:
    # Storage root (created at startup if absent)
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", os.path.join(_BACKEND_DIR, "uploads"))
    PUBLIC_UPLOAD_PREFIX: str = os.getenv("PUBLIC_UPLOAD_PREFIX", "/uploads")

    # Upload acceptance
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(40 * 1024 * 1024)))
    ALLOWED_CONTENT_TYPES: Tuple[str, ...] = (
        _split_csv(os.getenv("ALLOWED_CONTENT_TYPES")) or DEFAULT_ALLOWED_CONTENT_TYPES
    )
    UPLOAD_CHUNK_BYTES: int = int(os.getenv("UPLOAD_CHUNK_BYTES", str(1024 * 1024)))
    # multipart framing allowed on top of MAX_UPLOAD_BYTES before a body is cut off
    UPLOAD_OVERHEAD_BYTES: int = int(os.getenv("UPLOAD_OVERHEAD_BYTES", str(64 * 1024)))
    # leftover .incoming-*.part files older than this are removed at startup
    STALE_UPLOAD_SECONDS: int = int(os.getenv("STALE_UPLOAD_SECONDS", "3600"))

    # Stored-name generation
    ID_RANDOM_LENGTH: int = int(os.getenv("ID_RANDOM_LENGTH", "8"))
    PLACE_MAX_ATTEMPTS: int = int(os.getenv("PLACE_MAX_ATTEMPTS", "5"))

    # HTTP
    FRONTEND_URL: str | None = os.getenv("FRONTEND_URL")  # CORS origin + frame-ancestors
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8080"))

    # Logging; set LOG_FILE="" to log to the console only
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.getenv("LOG_FILE", os.path.join(_BACKEND_DIR, "server.log"))


settings = Settings()


def get_settings(request: Request) -> Settings:
    """FastAPI dependency returning the settings the app was built with."""
    return request.app.state.settings
