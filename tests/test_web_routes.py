"""Tests for web routes and API endpoints.

Tests the FastAPI application routes using httpx AsyncClient, covering
the fetch and analyze operations, error mapping, pre-flight requests,
the /functions/v1 prefix, and the health endpoint.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from prioritizer.config_schema import AppConfig, WebConfig
from prioritizer.core.errors import (
    ClassificationAPIError,
    MailboxAPIError,
    UpstreamFormatError,
)
from prioritizer.engine.pipeline import PrioritizationPipeline
from prioritizer.models import ClassificationResult, NormalizedEmail
from prioritizer.web.app import create_app

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fetcher() -> MagicMock:
    mock = MagicMock()
    mock.fetch = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def analyzer() -> MagicMock:
    return MagicMock()


@pytest.fixture
def pipeline(fetcher: MagicMock, analyzer: MagicMock) -> PrioritizationPipeline:
    return PrioritizationPipeline(fetcher=fetcher, analyzer=analyzer)


@pytest.fixture
def app(pipeline: PrioritizationPipeline, sample_config: AppConfig) -> FastAPI:
    """Create a FastAPI app with test dependencies."""
    test_app = create_app(sample_config)

    # Override app state with test dependencies
    test_app.state.config = sample_config
    test_app.state.pipeline = pipeline

    return test_app


@pytest.fixture
async def client(app: FastAPI) -> AsyncClient:
    """Return an httpx AsyncClient for the test app."""
    # Override lifespan to avoid real initialization
    app.router.lifespan_context = _noop_lifespan
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@asynccontextmanager
async def _noop_lifespan(app: FastAPI):
    """No-op lifespan that preserves existing app.state."""
    yield


def _email(email_id: str, subject: str = "Hello") -> NormalizedEmail:
    return NormalizedEmail(
        id=email_id,
        subject=subject,
        sender="Eve <eve@example.com>",
        date="Thu, 4 Jan 2024 12:00:00 +0000",
        snippet="snippet",
        body="body",
    )


def _email_json(email_id: str) -> dict:
    return _email(email_id).model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Tests: gmail-fetch
# ---------------------------------------------------------------------------


async def test_fetch_returns_messages(client: AsyncClient, fetcher: MagicMock):
    fetcher.fetch.return_value = [_email("m1", "First"), _email("m2", "Second")]

    response = await client.post("/gmail-fetch", json={"accessToken": "tok", "maxResults": 2})

    assert response.status_code == 200
    messages = response.json()["messages"]
    assert [m["id"] for m in messages] == ["m1", "m2"]
    assert messages[0] == {
        "id": "m1",
        "subject": "First",
        "from": "Eve <eve@example.com>",
        "date": "Thu, 4 Jan 2024 12:00:00 +0000",
        "snippet": "snippet",
        "body": "body",
    }
    fetcher.fetch.assert_awaited_once_with("tok", 2)


async def test_fetch_empty_mailbox(client: AsyncClient):
    response = await client.post("/gmail-fetch", json={"accessToken": "tok"})

    assert response.status_code == 200
    assert response.json() == {"messages": []}


async def test_fetch_missing_token_returns_400(client: AsyncClient, fetcher: MagicMock):
    response = await client.post("/gmail-fetch", json={"maxResults": 5})

    assert response.status_code == 400
    assert response.json() == {"error": "Access token is required"}
    fetcher.fetch.assert_not_awaited()


async def test_fetch_invalid_max_results_returns_400(client: AsyncClient):
    response = await client.post("/gmail-fetch", json={"accessToken": "tok", "maxResults": 0})

    assert response.status_code == 400
    assert "maxResults" in response.json()["error"]


async def test_fetch_malformed_body_returns_400(client: AsyncClient):
    response = await client.post(
        "/gmail-fetch",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert "error" in response.json()


async def test_fetch_upstream_status_is_propagated(client: AsyncClient, fetcher: MagicMock):
    fetcher.fetch.side_effect = MailboxAPIError("Gmail API error (401): bad token", status_code=401)

    response = await client.post("/gmail-fetch", json={"accessToken": "tok"})

    assert response.status_code == 401
    assert "bad token" in response.json()["error"]


async def test_fetch_unexpected_error_returns_500(client: AsyncClient, fetcher: MagicMock):
    fetcher.fetch.side_effect = RuntimeError("kaboom")

    response = await client.post("/gmail-fetch", json={"accessToken": "tok"})

    assert response.status_code == 500
    assert response.json() == {"error": "kaboom"}


# ---------------------------------------------------------------------------
# Tests: gmail-analyze
# ---------------------------------------------------------------------------


async def test_analyze_returns_ranked_emails(client: AsyncClient, analyzer: MagicMock):
    analyzer.classify.return_value = {
        "b": ClassificationResult(id="b", priority="high", reasoning="urgent"),
    }

    response = await client.post(
        "/gmail-analyze",
        json={"accessToken": "tok", "emails": [_email_json("a"), _email_json("b")]},
    )

    assert response.status_code == 200
    ranked = response.json()["prioritizedEmails"]
    assert [e["id"] for e in ranked] == ["b", "a"]
    assert ranked[0]["priority"] == "high"
    assert ranked[0]["reasoning"] == "urgent"
    assert ranked[0]["originUrl"] == "https://mail.google.com/mail/u/0/#inbox/b"
    assert ranked[0]["from"] == "Eve <eve@example.com>"
    assert ranked[1]["priority"] == "medium"
    assert ranked[1]["reasoning"] == "No analysis available"


async def test_analyze_accepts_minimal_email_records(client: AsyncClient, analyzer: MagicMock):
    analyzer.classify.return_value = {}

    response = await client.post(
        "/gmail-analyze", json={"accessToken": "tok", "emails": [{"id": "x"}]}
    )

    assert response.status_code == 200
    record = response.json()["prioritizedEmails"][0]
    assert record["subject"] == "No Subject"
    assert record["from"] == "Unknown Sender"


@pytest.mark.parametrize(
    "body",
    [
        {"emails": [{"id": "a"}]},
        {"accessToken": "tok"},
        {"accessToken": "tok", "emails": []},
    ],
)
async def test_analyze_missing_inputs_returns_400(
    client: AsyncClient, analyzer: MagicMock, body: dict
):
    response = await client.post("/gmail-analyze", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Access token and emails are required"}
    analyzer.classify.assert_not_called()


async def test_analyze_rejects_email_without_id(client: AsyncClient):
    response = await client.post(
        "/gmail-analyze", json={"accessToken": "tok", "emails": [{"subject": "no id"}]}
    )

    assert response.status_code == 400


async def test_analyze_missing_key_returns_500(app: FastAPI, client: AsyncClient):
    app.state.pipeline = PrioritizationPipeline(
        fetcher=MagicMock(), analyzer=None, analyzer_error="Classification API key not configured"
    )

    response = await client.post("/gmail-analyze", json={})

    assert response.status_code == 500
    assert response.json() == {"error": "Classification API key not configured"}


async def test_analyze_upstream_status_is_propagated(client: AsyncClient, analyzer: MagicMock):
    analyzer.classify.side_effect = ClassificationAPIError("rate limited", status_code=429)

    response = await client.post(
        "/gmail-analyze", json={"accessToken": "tok", "emails": [_email_json("a")]}
    )

    assert response.status_code == 429
    assert response.json() == {"error": "rate limited"}


async def test_analyze_malformed_reply_returns_500(client: AsyncClient, analyzer: MagicMock):
    analyzer.classify.side_effect = UpstreamFormatError(
        "Invalid response format from classification service: Invalid JSON"
    )

    response = await client.post(
        "/gmail-analyze", json={"accessToken": "tok", "emails": [_email_json("a")]}
    )

    assert response.status_code == 500
    assert "Invalid response format" in response.json()["error"]


# ---------------------------------------------------------------------------
# Tests: routing, pre-flight and health
# ---------------------------------------------------------------------------


async def test_functions_prefix_is_routed(client: AsyncClient, fetcher: MagicMock):
    fetcher.fetch.return_value = [_email("m1")]

    response = await client.post("/functions/v1/gmail-fetch", json={"accessToken": "tok"})

    assert response.status_code == 200
    assert response.json()["messages"][0]["id"] == "m1"


@pytest.mark.parametrize("path", ["/gmail-fetch", "/gmail-analyze", "/functions/v1/gmail-analyze"])
async def test_bare_preflight_returns_empty_200(client: AsyncClient, path: str):
    response = await client.options(path)

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert "content-type" in response.headers["access-control-allow-headers"]


@pytest.mark.parametrize("path", ["/gmail-analyze", "/functions/v1/gmail-fetch"])
@pytest.mark.parametrize(
    "requested", ["authorization, content-type", "x-requested-with, content-type"]
)
async def test_browser_preflight_returns_empty_200(client: AsyncClient, path: str, requested: str):
    response = await client.options(
        path,
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": requested,
        },
    )

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-headers"] == requested


async def test_listed_origin_is_echoed(sample_config: AppConfig, pipeline: PrioritizationPipeline):
    config = sample_config.model_copy(
        update={"web": WebConfig(cors_allow_origins=["https://app.example.com"])}
    )
    app = create_app(config)
    app.state.pipeline = pipeline
    app.router.lifespan_context = _noop_lifespan

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        allowed = await c.get("/health", headers={"Origin": "https://app.example.com"})
        other = await c.get("/health", headers={"Origin": "https://evil.example.com"})

    assert allowed.headers["access-control-allow-origin"] == "https://app.example.com"
    assert "access-control-allow-origin" not in other.headers


async def test_cors_headers_on_post(client: AsyncClient):
    response = await client.post(
        "/gmail-fetch",
        json={"accessToken": "tok"},
        headers={"Origin": "https://app.example.com"},
    )

    assert response.headers["access-control-allow-origin"] == "*"


async def test_health_endpoint(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["analyzer_configured"] is True
    assert "version" in data


async def test_health_degraded_without_pipeline(app: FastAPI, client: AsyncClient):
    app.state.pipeline = None

    response = await client.get("/health")

    assert response.json()["status"] == "degraded"


async def test_operations_without_pipeline_return_500(app: FastAPI, client: AsyncClient):
    app.state.pipeline = None

    response = await client.post("/gmail-fetch", json={"accessToken": "tok"})

    assert response.status_code == 500
    assert "not configured" in response.json()["error"]
