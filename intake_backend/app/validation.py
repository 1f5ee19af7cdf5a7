"""Upload acceptance checks.

Decisions are made from request metadata only: the declared content type
and, when the client sent one, the declared size.  The body itself is never
inspected here; the placer enforces the size ceiling again while streaming.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .errors import ErrorCode


@dataclass(frozen=True)
class ValidationDecision:
    accepted: bool
    reason: Optional[ErrorCode] = None

    @classmethod
    def accept(cls) -> "ValidationDecision":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: ErrorCode) -> "ValidationDecision":
        return cls(accepted=False, reason=reason)


def normalize_content_type(content_type: Optional[str]) -> str:
    """``"Image/PNG; charset=binary"`` -> ``"image/png"``."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def validate(
    declared_content_type: Optional[str],
    declared_size: Optional[int],
    *,
    allowed_content_types: Iterable[str],
    max_bytes: int,
) -> ValidationDecision:
    allowed = {normalize_content_type(t) for t in allowed_content_types}
    content_type = normalize_content_type(declared_content_type)
    if not content_type or content_type not in allowed:
        return ValidationDecision.reject(ErrorCode.UNSUPPORTED_TYPE)

    if declared_size is not None and declared_size > max_bytes:
        return ValidationDecision.reject(ErrorCode.TOO_LARGE)

    return ValidationDecision.accept()
