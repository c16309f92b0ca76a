"""
Error types raised by the annotator services.

Each error carries the HTTP status and machine-readable code the routers
report. DrawError is the exception to the rule: it is logged and swallowed
inside the renderers and never reaches a client.
"""

from typing import Optional


class AnnotatorError(Exception):
    """Base class for service errors surfaced to API clients."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_detail(self) -> dict:
        detail = {"message": self.message, "error": self.error_code}
        if self.details:
            detail["details"] = self.details
        return detail


class DocumentNotFoundError(AnnotatorError):
    status_code = 404
    error_code = "NOT_FOUND"


class HighlightNotFoundError(AnnotatorError):
    status_code = 404
    error_code = "NOT_FOUND"


class BlobNotFoundError(AnnotatorError):
    status_code = 404
    error_code = "NOT_FOUND"


class StoragePathMissingError(AnnotatorError):
    """Document has no locator for its original PDF (upload-time failure)."""

    status_code = 400
    error_code = "STORAGE_PATH_MISSING"


class NoAnnotatedVersionError(AnnotatorError):
    """Export of the persisted rendering was requested before generating it."""

    status_code = 400
    error_code = "NO_ANNOTATED_VERSION"


class InvalidHighlightError(AnnotatorError):
    status_code = 400
    error_code = "INVALID_HIGHLIGHT"


class RenderError(AnnotatorError):
    """Source PDF could not be parsed, fonts could not be set up, or output could not be serialized."""

    status_code = 500
    error_code = "RENDER_FAILED"


class BlobStoreError(AnnotatorError):
    status_code = 500
    error_code = "STORAGE_OPERATION_FAILED"


class DrawError(Exception):
    """Drawing one highlight or one footnote block failed."""

    def __init__(self, message: str, page_number: Optional[int] = None):
        super().__init__(message)
        self.page_number = page_number
