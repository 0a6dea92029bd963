from .playwright_engine import (
    CHROMIUM_ARGS,
    DEFAULT_VIEWPORT,
    PlaywrightRenderEngine,
    PlaywrightRenderSurface,
)

__all__ = [
    "PlaywrightRenderEngine",
    "PlaywrightRenderSurface",
    "CHROMIUM_ARGS",
    "DEFAULT_VIEWPORT",
]
