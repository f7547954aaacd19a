"""Custom exception classes."""

from typing import Optional


class PhotoImportException(Exception):
    """Base exception for the photo import service."""

    kind = "unexpected"


class ValidationError(PhotoImportException):
    """Raised when input validation fails."""

    kind = "validation"


class ImageProcessingError(PhotoImportException):
    """Raised when an uploaded image is unusable."""

    kind = "image"


class NotConfiguredError(PhotoImportException):
    """Raised when no completion credentials are configured."""

    kind = "not_configured"


class CompletionError(PhotoImportException):
    """Base for failures of a single completion call or its output."""

    kind = "completion"


class AuthError(CompletionError):
    """Raised when credentials are missing or rejected upstream."""

    kind = "auth"


class TransportError(CompletionError):
    """Raised when the completion service could not be reached."""

    kind = "transport"


class UpstreamError(CompletionError):
    """Raised when the completion service answers with an error status."""

    kind = "upstream"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(CompletionError):
    """Raised when a completion contains no usable JSON."""

    kind = "malformed_response"


class EmptyExtractionError(CompletionError):
    """Raised when parsed JSON holds neither ingredients nor instructions."""

    kind = "empty_extraction"
