"""Request body ceiling for upload routes.

Starlette spools a whole multipart body before the endpoint runs, so the
upload ceiling has to be enforced here, while bytes are still arriving:
an oversized ``Content-Length`` is refused without reading the body, and
otherwise the body is counted chunk by chunk and reading stops as soon as
the count passes the limit.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from fastapi.responses import JSONResponse

from .errors import ErrorCode, IntakeError

logger = logging.getLogger("intake.middleware")


class BodyTooLarge(Exception):
    """Raised from ``receive`` once the request body passes the ceiling."""


def _content_length(scope) -> Optional[int]:
    for name, value in scope.get("headers", []):
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None


class UploadLimitMiddleware:
    """Pure ASGI middleware; ``BaseHTTPMiddleware`` cannot wrap ``receive``."""

    def __init__(self, app, max_body_bytes: int, paths: Iterable[str] = ("/upload",)) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes
        self.paths = frozenset(paths)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope["method"] != "POST" or scope["path"] not in self.paths:
            await self.app(scope, receive, send)
            return

        declared = _content_length(scope)
        if declared is not None and declared > self.max_body_bytes:
            logger.warning("%s refused: Content-Length %d over %d", scope["path"], declared, self.max_body_bytes)
            await self._reject(scope, receive, send)
            return

        received = 0
        exceeded = False
        response_started = False

        async def limited_receive():
            nonlocal received, exceeded
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    exceeded = True
                    raise BodyTooLarge()
            return message

        async def guarded_send(message):
            nonlocal response_started
            # whatever the app answers to the aborted body is replaced below
            if exceeded and not response_started:
                return
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, guarded_send)
        except BodyTooLarge:
            if response_started:
                raise

        if exceeded and not response_started:
            logger.warning("%s aborted after %d bytes, ceiling %d", scope["path"], received, self.max_body_bytes)
            await self._reject(scope, receive, send)

    async def _reject(self, scope, receive, send):
        exc = IntakeError(ErrorCode.TOO_LARGE)
        response = JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message},
            headers={"Connection": "close"},
        )
        await response(scope, receive, send)
