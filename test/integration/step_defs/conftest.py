"""Shared fixtures and context for BDD step definitions."""
from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from app import ServiceRuntime, create_app
from infra.persistence import InMemoryCacheStore
from test.mocks import (
    FakeEncoder,
    FakeRenderEngine,
    InMemoryLogger,
    ManualClock,
    SequentialIdGenerator,
)


@dataclass
class CaptureContext:
    """Holds mutable state shared across BDD steps."""

    storage_dir: Path
    engine: FakeRenderEngine = field(default_factory=FakeRenderEngine)
    encoder: FakeEncoder = field(default_factory=FakeEncoder)
    logger: InMemoryLogger = field(default_factory=InMemoryLogger)
    client: TestClient | None = None
    response: httpx.Response | None = None
    stack: contextlib.ExitStack = field(default_factory=contextlib.ExitStack)

    def build_runtime(self) -> ServiceRuntime:
        clock = ManualClock(datetime(2025, 6, 1, tzinfo=timezone.utc))
        return ServiceRuntime(
            engine=self.engine,
            encoder=self.encoder,
            cache_store=InMemoryCacheStore(clock=clock),
            storage_dir=self.storage_dir,
            max_concurrent_captures=2,
            clock=clock,
            logger=self.logger,
            id_generator=SequentialIdGenerator(),
            frame_interval=0,
        )

    def start(self, *, auth_token: str | None = None, boot: bool = True) -> None:
        app = create_app(self.build_runtime(), auth_token=auth_token, boot_in_background=False)
        if boot:
            self.client = self.stack.enter_context(TestClient(app))
        else:
            # Lifespan only runs inside the client context, so the renderer stays down.
            self.client = TestClient(app)


@pytest.fixture()
def ctx(tmp_path: Path) -> Iterator[CaptureContext]:
    context = CaptureContext(storage_dir=tmp_path / "storage")
    with context.stack:
        yield context
