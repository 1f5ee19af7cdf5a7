"""
Error taxonomy for the intake service.

Every failure of the validator, placer or remover is raised as an
``IntakeError`` carrying exactly one ``ErrorCode``.  The HTTP layer turns it
into ``{"success": false, "message": ...}`` using the tables below, so the
client never sees filesystem paths or tracebacks.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorCode(str, Enum):
    UNSUPPORTED_TYPE = "unsupported_type"
    TOO_LARGE = "too_large"
    MISSING_NAME = "missing_name"
    INVALID_NAME = "invalid_name"
    NOT_FOUND = "not_found"
    IO_ERROR = "io_error"

    # raised by the request handlers only
    MISSING_FILE = "missing_file"
    INVALID_REQUEST = "invalid_request"


ERROR_STATUS: Dict[ErrorCode, int] = {
    ErrorCode.UNSUPPORTED_TYPE: 400,
    ErrorCode.TOO_LARGE: 400,
    ErrorCode.MISSING_FILE: 400,
    ErrorCode.MISSING_NAME: 400,
    ErrorCode.INVALID_NAME: 400,
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.IO_ERROR: 500,
}

ERROR_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.UNSUPPORTED_TYPE: "Unsupported file type",
    ErrorCode.TOO_LARGE: "File too large",
    ErrorCode.MISSING_FILE: "No file found in the request body",
    ErrorCode.MISSING_NAME: "File name is required",
    ErrorCode.INVALID_NAME: "Invalid file name",
    ErrorCode.INVALID_REQUEST: "Invalid request",
    ErrorCode.NOT_FOUND: "File not found",
    ErrorCode.IO_ERROR: "Error processing file",
}


class IntakeError(Exception):
    """Raised for any rejected or failed upload/delete operation."""

    def __init__(self, code: ErrorCode, message: Optional[str] = None) -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES[code]
        super().__init__(f"{code.value}: {self.message}")

    @property
    def status_code(self) -> int:
        return ERROR_STATUS[self.code]
