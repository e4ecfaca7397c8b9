"""Console error taxonomy.

Every failure raised by the logic layer derives from ``ConsoleError`` so the
HTTP layer can map it onto a problem+json response with a stable ``code``.
Backend collaborators raise the narrower classes; services catch them at the
operation boundary, log, post a message and re-raise or report.
"""

from __future__ import annotations

from typing import Iterable, Optional


class ConsoleError(Exception):
    """Base class for console failures."""

    code = "CONSOLE_ERROR"
    status = 500
    title = "Console Error"

    def __init__(self, message: str = "", *, detail: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = dict(detail or {})


class ReadError(ConsoleError):
    """Backend read rejected, index missing or malformed response."""

    code = "READ_FAILED"
    status = 502
    title = "Read Failed"


class WriteError(ConsoleError):
    """Create/update/delete rejected by the document store."""

    code = "WRITE_FAILED"
    status = 502
    title = "Write Failed"


class NotFoundError(WriteError):
    code = "RECORD_NOT_FOUND"
    status = 404
    title = "Not Found"


class UploadError(ConsoleError):
    """Object store rejected an asset."""

    code = "UPLOAD_FAILED"
    status = 502
    title = "Upload Failed"


class SeedImportError(ConsoleError):
    """Seed document lacks an expected section."""

    code = "SEED_SECTION_MISSING"
    status = 422
    title = "Import Failed"

    def __init__(self, section: str, message: str = "") -> None:
        super().__init__(message or f"No {section} data found in the seed file", detail={"section": section})
        self.section = section


class ValidationError(ConsoleError):
    """Required fields are empty; raised before any backend call."""

    code = "VALIDATION_FAILED"
    status = 422
    title = "Validation Failed"

    def __init__(self, message: str, missing: Iterable[str] = ()) -> None:
        missing_list = list(missing)
        super().__init__(message, detail={"missing": missing_list})
        self.missing = missing_list


class LoadError(ConsoleError):
    """Both the primary and the fallback read of a collection failed."""

    code = "LOAD_FAILED"
    status = 502
    title = "Load Failed"


class ReorderError(ConsoleError):
    """Reorder request rejected before any mutation."""

    code = "REORDER_INVALID"
    status = 409
    title = "Invalid Reorder"


class AuthError(ConsoleError):
    code = "AUTH_FAILED"
    status = 401
    title = "Unauthorized"


class BusyError(ConsoleError):
    """An operation of the same family is already in flight."""

    code = "OPERATION_BUSY"
    status = 409
    title = "Busy"


class ConfigError(ConsoleError):
    code = "CONFIG_INVALID"
    status = 422
    title = "Invalid Configuration"


__all__ = [
    "ConsoleError",
    "ReadError",
    "WriteError",
    "NotFoundError",
    "UploadError",
    "SeedImportError",
    "ValidationError",
    "LoadError",
    "ReorderError",
    "AuthError",
    "BusyError",
    "ConfigError",
]
