# intake_backend/app/main.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import storage
from .core.config import Settings, settings
from .core.logging import configure_logging
from .errors import ErrorCode, IntakeError
from .middleware import UploadLimitMiddleware
from .routers import files as files_router
from .routers import health as health_router

logger = logging.getLogger("intake.main")


def _security_headers(frontend_url: Optional[str]) -> dict:
    frame_ancestors = "'self'" + (f" {frontend_url}" if frontend_url else "")
    headers = {
        "Content-Security-Policy": f"default-src 'self'; frame-ancestors {frame_ancestors}",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "no-referrer",
    }
    if not frontend_url:
        headers["X-Frame-Options"] = "SAMEORIGIN"
    return headers


class StoredFiles(StaticFiles):
    """Static files minus dotfiles, so in-progress uploads are never served."""

    async def get_response(self, path: str, scope):
        if any(part.startswith(".") for part in path.replace("\\", "/").split("/")):
            raise StarletteHTTPException(status_code=404)
        return await super().get_response(path, scope)


def _error_response(exc: IntakeError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings
    configure_logging(app_settings)

    # an unusable storage root is fatal: let the OSError stop startup
    upload_root = storage.ensure_upload_dir(app_settings.UPLOAD_DIR)
    storage.purge_stale_uploads(upload_root, app_settings.STALE_UPLOAD_SECONDS)

    app = FastAPI(title="File Intake API", version="0.1.0")
    app.state.settings = app_settings

    # --- upload ceiling, enforced while the body arrives ---
    app.add_middleware(
        UploadLimitMiddleware,
        max_body_bytes=app_settings.MAX_UPLOAD_BYTES + app_settings.UPLOAD_OVERHEAD_BYTES,
        paths=("/upload",),
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[app_settings.FRONTEND_URL] if app_settings.FRONTEND_URL else ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    # --- security headers ---
    security_headers = _security_headers(app_settings.FRONTEND_URL)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in security_headers.items():
            response.headers.setdefault(name, value)
        return response

    # --- error mapping ---
    @app.exception_handler(IntakeError)
    async def intake_error_handler(request: Request, exc: IntakeError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log("%s %s rejected: %s", request.method, request.url.path, exc)
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("%s %s malformed request: %s", request.method, request.url.path, exc.errors())
        return _error_response(IntakeError(ErrorCode.INVALID_REQUEST))

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "API is running..."

    # include routers
    app.include_router(files_router.router)
    app.include_router(health_router.router)

    # stored files are served as-is from the storage root
    app.mount(
        app_settings.PUBLIC_UPLOAD_PREFIX,
        StoredFiles(directory=upload_root),
        name="uploads",
    )

    # lifecycle hooks for debug
    @app.on_event("startup")
    async def on_startup():
        logger.info(">>>> INTAKE STARTUP: storage root %s", upload_root)

    @app.on_event("shutdown")
    async def on_shutdown():
        logger.info(">>>> INTAKE SHUTDOWN")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
