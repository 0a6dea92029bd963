"""HTTP layer package."""

from .api import create_app
from .auth import BearerTokenAuth
from .runtime import ServiceRuntime

__all__ = ["create_app", "BearerTokenAuth", "ServiceRuntime"]
