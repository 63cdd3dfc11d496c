from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app

from conftest import html_response

CACHE_CONTROL = "public, max-age=3600, s-maxage=3600, stale-while-revalidate=86400"


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/missing":
        return html_response("gone", status_code=404)
    return html_response(
        '<title>Example Domain</title><meta property="og:site_name" content="Example">'
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(allowed_origins="http://localhost:3000")


@pytest.fixture
def client(settings):
    app = create_app(settings, transport=httpx.MockTransport(_handler))
    with TestClient(app) as test_client:
        yield test_client


def test_preview_success(client):
    response = client.post("/preview", json={"url": "  example.com  "})

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == CACHE_CONTROL
    assert response.json() == {
        "url": "https://example.com",
        "title": "Example Domain",
        "description": "",
        "image": "",
        "site_name": "Example",
    }


def test_preview_remote_error_is_still_200(client):
    response = client.post("/preview", json={"url": "https://example.com/missing"})

    assert response.status_code == 200
    assert "Cache-Control" not in response.headers
    body = response.json()
    assert body["error"] == "HTTP error: 404 Not Found"
    assert body["title"] == ""


def test_preview_invalid_url(client):
    response = client.post("/preview", json={"url": "not a url"})

    assert response.status_code == 200
    body = response.json()
    assert body["url"] == "not a url"
    assert body["error"].startswith("Invalid URL format: ")


def test_preview_timeout_is_408(settings):
    async def hanging(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(3600)
        raise AssertionError("unreachable")

    settings = settings.model_copy(update={"preview_timeout": 0.05})
    app = create_app(settings, transport=httpx.MockTransport(hanging))
    with TestClient(app) as test_client:
        response = test_client.post("/preview", json={"url": "example.com/slow"})

    assert response.status_code == 408
    assert response.json() == {
        "error": "Request timed out while fetching link preview",
        "url": "example.com/slow",
    }


@pytest.mark.parametrize("payload", [{}, {"link": "https://example.com"}, {"url": None}])
def test_preview_rejects_malformed_body(client, payload):
    response = client.post("/preview", json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request format. Expected JSON with 'url' field."
    assert body["details"]


def test_preview_rejects_non_json_body(client):
    response = client.post(
        "/preview", content=b"url=example.com", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400


def test_preview_rejects_blank_url(client):
    response = client.post("/preview", json={"url": "   "})

    assert response.status_code == 400
    assert response.json() == {"error": "URL cannot be empty"}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["service"] == "link-preview-api"
    assert body["timestamp"]


def test_api_docs(client):
    body = client.get("/").json()

    assert body["service"] == "Link Preview API"
    assert "POST /preview" in body["endpoints"]
    assert "GET /health" in body["endpoints"]


def test_cors_allowed_origin_is_echoed(client):
    response = client.post(
        "/preview",
        json={"url": "example.com"},
        headers={"Origin": "http://localhost:3000"},
    )

    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
    assert response.headers["Access-Control-Allow-Credentials"] == "true"


def test_cors_unknown_origin_gets_no_header(client):
    response = client.get("/health", headers={"Origin": "https://evil.example"})

    assert "Access-Control-Allow-Origin" not in response.headers


def test_cors_preflight(client):
    response = client.options(
        "/preview",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code in (200, 204)
    assert "POST" in response.headers["Access-Control-Allow-Methods"]


def test_cors_wildcard():
    app = create_app(Settings(allowed_origins="*"), transport=httpx.MockTransport(_handler))
    with TestClient(app) as test_client:
        response = test_client.get("/health", headers={"Origin": "https://anywhere.example"})

    assert response.headers["Access-Control-Allow-Origin"] == "*"
