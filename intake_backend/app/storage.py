"""File storage utilities.

This module places uploaded files into the storage root and removes them
again.  Stored names are ``<identifier>-<sanitized original name>``; the name
is the only record of a file, there is no metadata beside it.

Uploads are written to a private ``.incoming-*.part`` file in the root and
only linked under their final name once the body has been fully received,
so a half-written file is never visible under a stored name.  Nothing here
holds a lock: uniqueness comes from the identifier and from the
no-overwrite publish step, containment from resolving every requested path
against the root.
"""
from __future__ import annotations

import errno
import logging
import os
import re
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterable, Optional

from .errors import ErrorCode, IntakeError
from .identifiers import new_identifier, to_base36
from .validation import normalize_content_type, validate

logger = logging.getLogger("intake.storage")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")
_TEMP_PREFIX = ".incoming-"
_TEMP_SUFFIX = ".part"
# NAME_MAX on common filesystems; sanitized names are ASCII, so chars == bytes
_MAX_STORED_NAME_BYTES = 255

# link() errors that mean "this filesystem cannot hard link", not "disk broken"
_NO_LINK_ERRNOS = {errno.EPERM, errno.EXDEV, errno.EMLINK, errno.ENOTSUP, errno.EOPNOTSUPP}


@dataclass(frozen=True)
class StoredFile:
    name: str
    size: int
    content_type: str
    created_at: datetime


def ensure_upload_dir(root: str | os.PathLike) -> Path:
    """Ensure that the upload directory exists and return its resolved path."""
    path = Path(root)
    path.mkdir(parents=True, exist_ok=True)
    return path.resolve()


def purge_stale_uploads(root: str | os.PathLike, older_than_seconds: float) -> int:
    """Remove temp files left behind by a crashed process; returns how many."""
    cutoff = time.time() - older_than_seconds
    removed = 0
    for leftover in Path(root).glob(f"{_TEMP_PREFIX}*{_TEMP_SUFFIX}"):
        try:
            if leftover.stat().st_mtime > cutoff:
                continue
            leftover.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Could not remove stale partial upload %s: %s", leftover.name, exc)
            continue
        removed += 1
        logger.info("Removed stale partial upload %s", leftover.name)
    return removed


def sanitize_filename(original_name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9.-]`` with ``_``."""
    return _UNSAFE_CHARS.sub("_", original_name)


def compose_stored_name(identifier: str, sanitized_name: str) -> str:
    return f"{identifier}-{sanitized_name}"


def _copy_limited(stream: BinaryIO, out: BinaryIO, max_bytes: int, chunk_size: int) -> int:
    received = 0
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            return received
        received += len(chunk)
        if received > max_bytes:
            raise IntakeError(ErrorCode.TOO_LARGE)
        out.write(chunk)


def _publish(temp_path: Path, root: Path, sanitized_name: str, random_length: int, max_attempts: int) -> str:
    """Give the finished temp file its stored name without overwriting anything."""
    for attempt in range(1, max_attempts + 1):
        stored_name = compose_stored_name(new_identifier(random_length), sanitized_name)
        target = root / stored_name
        try:
            os.link(temp_path, target)
        except FileExistsError:
            logger.warning("Stored name collision on %s (attempt %d/%d)", stored_name, attempt, max_attempts)
            continue
        except OSError as exc:
            if exc.errno not in _NO_LINK_ERRNOS:
                raise
            # no hard links here: check-then-replace, not atomic against a same-name race
            if target.exists():
                logger.warning("Stored name collision on %s (attempt %d/%d)", stored_name, attempt, max_attempts)
                continue
            os.replace(temp_path, target)
            return stored_name
        _discard(temp_path)
        return stored_name

    logger.error("Could not find a free stored name after %d attempts", max_attempts)
    raise IntakeError(ErrorCode.IO_ERROR, "Error saving file")


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.error("Failed to remove partial upload %s: %s", path.name, exc)


def place(
    original_name: str,
    stream: BinaryIO,
    declared_type: Optional[str],
    declared_size: Optional[int],
    *,
    root: str | os.PathLike,
    allowed_content_types: Iterable[str],
    max_bytes: int,
    random_length: int = 8,
    max_attempts: int = 5,
    chunk_size: int = 1024 * 1024,
) -> StoredFile:
    """Validate an upload and stream it into the storage root.

    Raises ``IntakeError`` with ``unsupported_type``, ``too_large``,
    ``invalid_name`` (stored name would pass 255 bytes) or ``io_error``.
    On every failure path the partially written file is removed before the
    error propagates.
    """
    decision = validate(
        declared_type,
        declared_size,
        allowed_content_types=allowed_content_types,
        max_bytes=max_bytes,
    )
    if not decision.accepted:
        raise IntakeError(decision.reason)

    root_path = Path(root)
    sanitized = sanitize_filename(original_name)
    name_length = random_length + len(to_base36(time.time_ns() // 1_000_000)) + 1 + len(sanitized)
    if name_length > _MAX_STORED_NAME_BYTES:
        raise IntakeError(ErrorCode.INVALID_NAME, "File name too long")

    try:
        fd, temp_name = tempfile.mkstemp(prefix=_TEMP_PREFIX, suffix=_TEMP_SUFFIX, dir=root_path)
    except OSError as exc:
        logger.error("Cannot create upload file in storage root: %s", exc)
        raise IntakeError(ErrorCode.IO_ERROR, "Error saving file") from exc

    temp_path = Path(temp_name)
    published = False
    try:
        with os.fdopen(fd, "wb") as out:
            size = _copy_limited(stream, out, max_bytes, chunk_size)
            out.flush()
            os.fsync(out.fileno())

        if declared_size is not None and size != declared_size:
            logger.warning("Upload of %s truncated: %d of %d bytes", sanitized, size, declared_size)
            raise IntakeError(ErrorCode.IO_ERROR, "Upload was interrupted")

        os.chmod(temp_path, 0o644)
        stored_name = _publish(temp_path, root_path, sanitized, random_length, max_attempts)
        published = True
    except OSError as exc:
        logger.error("Failed to write upload %s: %s", sanitized, exc)
        raise IntakeError(ErrorCode.IO_ERROR, "Error saving file") from exc
    finally:
        if not published:
            _discard(temp_path)

    return StoredFile(
        name=stored_name,
        size=size,
        content_type=normalize_content_type(declared_type),
        created_at=datetime.now(timezone.utc),
    )


def remove(requested_name: Optional[str], *, root: str | os.PathLike) -> None:
    """Delete ``requested_name`` from the storage root.

    Raises ``IntakeError`` with ``missing_name``, ``invalid_name``,
    ``not_found`` or ``io_error``.  Only paths that still lie strictly
    inside the root after resolving symlinks and ``..`` are ever unlinked.
    """
    if not requested_name or not requested_name.strip():
        raise IntakeError(ErrorCode.MISSING_NAME)
    if "\x00" in requested_name:
        raise IntakeError(ErrorCode.INVALID_NAME)

    root_path = Path(root).resolve()
    try:
        candidate = (root_path / requested_name).resolve()
    except (OSError, ValueError, RuntimeError):
        raise IntakeError(ErrorCode.INVALID_NAME)

    if candidate == root_path or root_path not in candidate.parents:
        raise IntakeError(ErrorCode.INVALID_NAME)

    try:
        is_file = candidate.is_file()
    except OSError:
        raise IntakeError(ErrorCode.INVALID_NAME)
    if not is_file:
        raise IntakeError(ErrorCode.NOT_FOUND)

    try:
        candidate.unlink()
    except FileNotFoundError:
        raise IntakeError(ErrorCode.NOT_FOUND)
    except OSError as exc:
        logger.error("Error deleting file %s: %s", requested_name, exc)
        raise IntakeError(ErrorCode.IO_ERROR, "Error deleting file") from exc
