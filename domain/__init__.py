"""
Domain layer package.

This package contains the capture workflow, its models and the ports it
depends on. Nothing here imports a browser, an encoder or a web framework.
"""

from .errors import (  # noqa: F401
    AuthError,
    CaptureFailedError,
    CaptureServiceError,
    EncodeError,
    InvalidUrlError,
    NotReadyError,
    RenderError,
    RenderTimeoutError,
    StorageError,
    ValidationError,
)
from .models import (  # noqa: F401
    CacheBackend,
    CacheEntry,
    CaptureFormat,
    CaptureRequest,
    CaptureResult,
    CaptureState,
    EngineState,
    ServiceConfig,
)
from .ports import (  # noqa: F401
    CacheStorePort,
    ClockPort,
    FrameEncoderPort,
    IdGeneratorPort,
    LoggerPort,
    RenderEnginePort,
    RenderSurfacePort,
)

__all__ = [
    # Errors
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
    # Models
    "CacheBackend",
    "CacheEntry",
    "CaptureFormat",
    "CaptureRequest",
    "CaptureResult",
    "CaptureState",
    "EngineState",
    "ServiceConfig",
    # Ports
    "CacheStorePort",
    "RenderSurfacePort",
    "RenderEnginePort",
    "FrameEncoderPort",
    "ClockPort",
    "IdGeneratorPort",
    "LoggerPort",
]
