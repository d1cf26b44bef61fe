"""Error taxonomy shared by the OCR gateway, document store, and HTTP layer.

Every error carries a user-facing ``message``, optional ``details`` and the
HTTP status the API responds with. The FastAPI app renders them all through a
single exception handler as ``{"error": message, "details": details}``.
"""

from typing import Any


class OCRNotesError(Exception):
    """Base class for all application errors.

    Args:
        message: Short user-facing description of the failure.
        details: Optional extra information, usually the upstream message.
    """

    status_code: int = 500

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON error body for this error."""
        payload: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ConfigurationError(OCRNotesError):
    """A required credential is missing or still set to a placeholder."""


class ValidationError(OCRNotesError):
    """A request is missing required fields or carries invalid input."""

    status_code = 400


class EncodingError(ValidationError):
    """An uploaded file could not be read or decoded as an image."""


class AuthorizationError(OCRNotesError):
    """The caller has no valid session."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized", details: str | None = None) -> None:
        super().__init__(message, details)


class ProviderError(OCRNotesError):
    """An external service (OCR, auth, or storage backend) failed."""


class ExtractionError(ProviderError):
    """The OCR provider call failed."""


class StorageError(ProviderError):
    """The relational store rejected or failed an operation."""
