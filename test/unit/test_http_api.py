"""HTTP surface tests using FastAPI's TestClient and in-process fakes."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app import ServiceRuntime, create_app
from domain.errors import RenderTimeoutError
from infra.persistence import InMemoryCacheStore
from test.mocks import (
    FAKE_PNG,
    FAKE_WEBP,
    FakeEncoder,
    FakeRenderEngine,
    InMemoryLogger,
    ManualClock,
    SequentialIdGenerator,
)


def _runtime(tmp_path: Path, engine: FakeRenderEngine | None = None) -> ServiceRuntime:
    clock = ManualClock(datetime(2025, 1, 1, tzinfo=timezone.utc))
    return ServiceRuntime(
        engine=engine or FakeRenderEngine(),
        encoder=FakeEncoder(),
        cache_store=InMemoryCacheStore(clock=clock),
        storage_dir=tmp_path / "storage",
        max_concurrent_captures=2,
        clock=clock,
        logger=InMemoryLogger(),
        id_generator=SequentialIdGenerator(),
        frame_interval=0,
    )


@pytest.fixture()
def engine() -> FakeRenderEngine:
    return FakeRenderEngine()


@pytest.fixture()
def client(tmp_path: Path, engine: FakeRenderEngine):
    app = create_app(_runtime(tmp_path, engine), boot_in_background=False)
    with TestClient(app) as test_client:
        yield test_client


def test_health_before_boot_is_503(tmp_path: Path) -> None:
    app = create_app(_runtime(tmp_path))
    # Without entering the client context the lifespan never runs.
    test_client = TestClient(app)
    for path in ("/healthz", "/health"):
        response = test_client.get(path)
        assert response.status_code == 503
        assert response.text == "Service Unavailable"


def test_capture_before_boot_is_503(tmp_path: Path) -> None:
    test_client = TestClient(create_app(_runtime(tmp_path)))
    response = test_client.get("/capture", params={"url": "example.com"})
    assert response.status_code == 503
    assert response.json() == {"error": "Renderer is not ready."}


def test_health_when_ready(client: TestClient) -> None:
    for path in ("/healthz", "/health"):
        response = client.get(path)
        assert response.status_code == 200
        assert response.text == "OK"


def test_still_capture_then_cache_hit(client: TestClient, engine: FakeRenderEngine) -> None:
    first = client.get("/capture", params={"url": "example.com"})
    second = client.get("/capture", params={"url": "http://example.com/"})

    assert first.status_code == second.status_code == 200
    assert first.headers["content-type"] == "image/png"
    assert first.content == second.content == FAKE_PNG
    assert engine.surfaces_opened == 1


def test_nocache_flag_forces_render(client: TestClient, engine: FakeRenderEngine) -> None:
    client.get("/capture", params={"url": "example.com"})
    response = client.get("/capture?url=example.com&nocache")

    assert response.status_code == 200
    assert engine.surfaces_opened == 2


def test_animated_capture(client: TestClient, engine: FakeRenderEngine) -> None:
    response = client.get("/capture", params={"url": "example.com", "format": "webp", "length": "2"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/webp"
    assert response.content == FAKE_WEBP
    assert len(engine.screenshots) == 8


@pytest.mark.parametrize(
    "params, message",
    [
        ({}, "`url` is required."),
        ({"url": "example.com", "format": "gif"}, '`format` must be "png" or "webp".'),
        ({"url": "example.com", "format": "webp"}, "`length` is required for webp."),
        ({"url": "example.com", "format": "webp", "length": "6"}, "`length` must be integer 1–5."),
        ({"url": "http://exa mple.com"}, "Invalid URL."),
    ],
)
def test_invalid_requests_are_400(
    client: TestClient, engine: FakeRenderEngine, params: dict[str, str], message: str
) -> None:
    response = client.get("/capture", params=params)
    assert response.status_code == 400
    assert response.json() == {"error": message}
    assert engine.surfaces_opened == 0


def test_render_failure_is_500(tmp_path: Path) -> None:
    engine = FakeRenderEngine(navigation_error=RenderTimeoutError("slow page"))
    app = create_app(_runtime(tmp_path, engine), boot_in_background=False)
    with TestClient(app) as test_client:
        response = test_client.get("/capture", params={"url": "example.com"})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to capture."}


def test_shutdown_closes_engine(tmp_path: Path, engine: FakeRenderEngine) -> None:
    app = create_app(_runtime(tmp_path, engine), boot_in_background=False)
    with TestClient(app):
        assert engine.launched
    assert engine.closed


# ---------- Auth -------------------------------------------------------------

@pytest.fixture()
def secured(tmp_path: Path, engine: FakeRenderEngine):
    app = create_app(_runtime(tmp_path, engine), auth_token="s3cret", boot_in_background=False)
    with TestClient(app) as test_client:
        yield test_client


def test_missing_header_is_401(secured: TestClient) -> None:
    response = secured.get("/capture", params={"url": "example.com"})
    assert response.status_code == 401
    assert response.json() == {"error": "Missing Authorization header"}


@pytest.mark.parametrize("header", ["Bearer wrong", "Basic s3cret", "s3cret", "Bearer"])
def test_wrong_token_is_403(secured: TestClient, header: str) -> None:
    response = secured.get(
        "/capture", params={"url": "example.com"}, headers={"Authorization": header}
    )
    assert response.status_code == 403
    assert response.json() == {"error": "Invalid or missing token"}


def test_valid_token_passes(secured: TestClient) -> None:
    response = secured.get(
        "/capture", params={"url": "example.com"}, headers={"Authorization": "Bearer s3cret"}
    )
    assert response.status_code == 200


def test_auth_checked_before_validation(secured: TestClient) -> None:
    assert secured.get("/capture").status_code == 401


def test_health_is_public(secured: TestClient) -> None:
    assert secured.get("/healthz").status_code == 200


def test_auth_before_readiness(tmp_path: Path) -> None:
    app = create_app(_runtime(tmp_path), auth_token="s3cret")
    assert TestClient(app).get("/capture", params={"url": "example.com"}).status_code == 401
