"""API tests with FastAPI TestClient and dependency overrides."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from linkwise.api.dependencies import get_canonicalizer, get_db, get_enrichment
from linkwise.core.config import settings
from linkwise.core.constants import EnrichmentSource, EnrichmentStatus
from linkwise.main import create_app
from linkwise.services.canonicalizer import ResolutionResult
from linkwise.services.enrichment_types import EnrichmentResult


def _resolution(url: str, status: str = "success") -> ResolutionResult:
    return ResolutionResult(
        original_url=url,
        canonical_url="https://example.com/article",
        domain="example.com",
        redirect_chain=[url, "https://example.com/article"],
        status=status,
    )


@pytest.fixture
def canonicalizer() -> MagicMock:
    mock = MagicMock()
    mock.canonicalize = AsyncMock(side_effect=lambda url: _resolution(url))
    mock.canonicalize_many = AsyncMock(
        side_effect=lambda urls: [_resolution(u, "failed" if "bad" in u else "success") for u in urls]
    )
    return mock


@pytest.fixture
def enrichment() -> MagicMock:
    mock = MagicMock()
    mock.enrich = AsyncMock(
        return_value=EnrichmentResult(
            status=EnrichmentStatus.SUCCESS,
            source=EnrichmentSource.ARTICLE,
            title="A Headline",
        )
    )
    return mock


@pytest.fixture
def client(canonicalizer, enrichment):
    app = create_app()
    app.dependency_overrides[get_canonicalizer] = lambda: canonicalizer
    app.dependency_overrides[get_enrichment] = lambda: enrichment
    with patch.object(settings, "APIM_INTERNAL_TOKEN", None):
        yield TestClient(app)


def test_canonicalize(client) -> None:
    response = client.post("/api/v1/links/canonicalize", json={"url": "https://bit.ly/abc"})

    assert response.status_code == 200
    body = response.json()
    assert body["canonical_url"] == "https://example.com/article"
    assert body["status"] == "success"
    assert response.headers["X-Request-ID"]


def test_request_id_is_echoed(client) -> None:
    response = client.post(
        "/api/v1/links/canonicalize",
        json={"url": "https://bit.ly/abc"},
        headers={"X-Request-ID": "req-123"},
    )
    assert response.headers["X-Request-ID"] == "req-123"


def test_canonicalize_rejects_blank_url(client) -> None:
    response = client.post("/api/v1/links/canonicalize", json={"url": "   "})
    assert response.status_code == 422


def test_canonicalize_batch_counts_failures(client) -> None:
    response = client.post(
        "/api/v1/links/canonicalize/batch",
        json={"urls": ["https://bit.ly/a", "https://bit.ly/bad", "https://bit.ly/c"]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 3
    assert body["failed"] == 1
    assert [r["original_url"] for r in body["results"]] == [
        "https://bit.ly/a",
        "https://bit.ly/bad",
        "https://bit.ly/c",
    ]


def test_canonicalize_batch_size_limit(client) -> None:
    urls = [f"https://example.com/{n}" for n in range(101)]
    response = client.post("/api/v1/links/canonicalize/batch", json={"urls": urls})
    assert response.status_code == 422


def test_enrich(client, enrichment) -> None:
    response = client.post(
        "/api/v1/links/enrich",
        json={"id": "link-1", "canonical_url": "https://example.com/article"},
    )

    assert response.status_code == 200
    assert response.json()["title"] == "A Headline"
    link = enrichment.enrich.await_args.args[0]
    assert link.id == "link-1"


def test_display_title_is_computed_locally(client) -> None:
    response = client.post(
        "/api/v1/links/display-title",
        json={"canonical_url": "https://example.com/2024/my-cool-post"},
    )

    assert response.status_code == 200
    assert response.json() == {"title": "My Cool Post", "source": "generated"}


def test_internal_token_is_enforced_when_configured(client) -> None:
    with patch.object(settings, "APIM_INTERNAL_TOKEN", "secret"):
        missing = client.post("/api/v1/links/canonicalize", json={"url": "https://x.test"})
        wrong = client.post(
            "/api/v1/links/canonicalize",
            json={"url": "https://x.test"},
            headers={"X-Internal-Token": "nope"},
        )
        ok = client.post(
            "/api/v1/links/canonicalize",
            json={"url": "https://x.test"},
            headers={"X-Internal-Token": "secret"},
        )

    assert missing.status_code == 403
    assert wrong.status_code == 403
    assert ok.status_code == 200


def test_reset_garbage_titles_requires_database(client) -> None:
    unconfigured = MagicMock()
    unconfigured.is_configured = False
    client.app.dependency_overrides[get_db] = lambda: unconfigured

    response = client.post("/api/v1/admin/links/reset-garbage-titles", json={})

    assert response.status_code == 503


def test_reset_garbage_titles(client) -> None:
    db = MagicMock()
    db.is_configured = True
    client.app.dependency_overrides[get_db] = lambda: db

    with patch(
        "linkwise.api.v1.admin.reset_garbage_titles",
        new=AsyncMock(return_value={"scanned": 40, "reset": 3}),
    ) as reset:
        response = client.post(
            "/api/v1/admin/links/reset-garbage-titles", json={"batch_size": 20}
        )

    assert response.status_code == 200
    assert response.json() == {"scanned": 40, "reset": 3}
    assert reset.await_args.kwargs["batch_size"] == 20


def test_health_reports_unconfigured_stores(client) -> None:
    db = MagicMock()
    db.is_configured = False
    redis_handle = MagicMock()
    redis_handle.is_configured = True
    redis_handle.ping = AsyncMock(return_value=True)
    client.app.state.db = db
    client.app.state.redis = redis_handle

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "db": "not_configured", "redis": "ok"}


def test_health_degrades_when_configured_store_is_down(client) -> None:
    db = MagicMock()
    db.is_configured = True
    db.ping = AsyncMock(return_value=False)
    redis_handle = MagicMock()
    redis_handle.is_configured = False
    client.app.state.db = db
    client.app.state.redis = redis_handle

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["db"] == "unavailable"


def test_metrics_endpoint(client) -> None:
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "canonicalize_total" in response.text
