from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse

from app.auth import BearerTokenAuth
from app.runtime import ServiceRuntime
from domain.errors import AuthError, CaptureFailedError, NotReadyError, ValidationError
from domain.services import build_capture_request


def create_app(
    runtime: ServiceRuntime,
    *,
    auth_token: str | None = None,
    boot_in_background: bool = True,
) -> FastAPI:
    """
    Build the HTTP surface around an (unstarted) ``ServiceRuntime``.

    By default the engine boots in a background task so ``/healthz`` answers
    503 while the browser is still launching.
    """

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        boot_task: asyncio.Task[bool] | None = None
        if boot_in_background:
            boot_task = asyncio.create_task(runtime.boot())
        else:
            await runtime.start()
        try:
            yield
        finally:
            if boot_task is not None and not boot_task.done():
                boot_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await boot_task
            await runtime.shutdown()

    app = FastAPI(title="Page Capture Service", lifespan=lifespan)
    app.state.runtime = runtime
    require_token = BearerTokenAuth(auth_token)

    @app.exception_handler(ValidationError)
    async def _validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(AuthError)
    async def _auth_error(_: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    @app.exception_handler(NotReadyError)
    async def _not_ready(_: Request, exc: NotReadyError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"error": str(exc)})

    @app.exception_handler(CaptureFailedError)
    async def _capture_failed(_: Request, exc: CaptureFailedError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/healthz", response_class=PlainTextResponse)
    @app.get("/health", response_class=PlainTextResponse)
    async def health() -> PlainTextResponse:
        if runtime.is_ready:
            return PlainTextResponse("OK")
        return PlainTextResponse("Service Unavailable", status_code=503)

    @app.get("/capture", dependencies=[Depends(require_token)])
    async def capture(
        url: str | None = Query(default=None),
        format: str | None = Query(default=None),
        length: str | None = Query(default=None),
        nocache: str | None = Query(default=None),
    ) -> FileResponse:
        service = runtime.require_ready()
        request = build_capture_request(url, format, length, nocache)
        result = await service.capture(request)
        return FileResponse(result.path, media_type=result.format.media_type)

    return app
