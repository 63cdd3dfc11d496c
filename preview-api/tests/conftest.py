"""Shared fixtures: every outbound request goes through httpx.MockTransport."""

from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
import pytest

from app.services.fetcher import Fetcher, build_client


def html_response(body: str | bytes, status_code: int = 200, **headers: str) -> httpx.Response:
    headers.setdefault("Content-Type", "text/html; charset=utf-8")
    return httpx.Response(status_code, headers=headers, content=body)


@pytest.fixture
def mock_fetcher():
    """Factory yielding a :class:`Fetcher` whose client is wired to ``handler``."""

    @asynccontextmanager
    async def factory(handler, **kwargs):
        async with build_client(transport=httpx.MockTransport(handler)) as client:
            yield Fetcher(client, **kwargs)

    return factory


@pytest.fixture
def page():
    """Handler factory serving fixed markup for every request."""

    def factory(body: str | bytes, status_code: int = 200, **headers: str):
        def handler(request: httpx.Request) -> httpx.Response:
            return html_response(body, status_code, **headers)

        return handler

    return factory
