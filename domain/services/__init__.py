"""
Domain services.

These services orchestrate the capture workflow while depending only on
domain models and ports so that infrastructure and HTTP layers stay thin.
"""

from .capture_job import CaptureJob
from .capture_requests import build_capture_request
from .capture_service import CaptureService
from .gate import ConcurrencyGate, Permit
from .keys import cache_key_for, derive_cache_key, normalize_url

__all__ = [
    "CaptureJob",
    "CaptureService",
    "ConcurrencyGate",
    "Permit",
    "build_capture_request",
    "cache_key_for",
    "derive_cache_key",
    "normalize_url",
]
