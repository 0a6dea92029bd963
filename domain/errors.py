"""Error taxonomy shared by the domain, the adapters and the HTTP layer."""

from __future__ import annotations


class CaptureServiceError(Exception):
    pass


class ValidationError(CaptureServiceError):
    """Bad or missing request parameters; the client is at fault."""


class InvalidUrlError(ValidationError):
    def __init__(self, message: str = "Invalid URL.") -> None:
        super().__init__(message)


class AuthError(CaptureServiceError):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotReadyError(CaptureServiceError):
    def __init__(self, message: str = "Renderer is not ready.") -> None:
        super().__init__(message)


class RenderError(CaptureServiceError):
    pass


class RenderTimeoutError(RenderError):
    pass


class EncodeError(CaptureServiceError):
    pass


class StorageError(CaptureServiceError):
    pass


class CaptureFailedError(CaptureServiceError):
    """Generic failure surfaced to clients; the cause is chained, not exposed."""

    def __init__(self, message: str = "Failed to capture.") -> None:
        super().__init__(message)


__all__ = [
    "CaptureServiceError",
    "ValidationError",
    "InvalidUrlError",
    "AuthError",
    "NotReadyError",
    "RenderError",
    "RenderTimeoutError",
    "EncodeError",
    "StorageError",
    "CaptureFailedError",
]
