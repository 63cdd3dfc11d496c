"""Bounded retrieval of remote documents for link previews."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from http.cookiejar import CookieJar, DefaultCookiePolicy

import httpx

from app.services.errors import (
    BodyReadError,
    HTTPStatusFailedError,
    RequestConstructionError,
    TransportFailedError,
)

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 1024 * 1024
DEFAULT_FETCH_TIMEOUT = 10.0
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class FetchResult:
    body: bytes
    status_code: int
    encoding: str | None = None


def build_client(
    timeout: float = DEFAULT_FETCH_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the outbound client: redirects followed, cookies never stored."""
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        cookies=CookieJar(policy=DefaultCookiePolicy(allowed_domains=[])),
        transport=transport,
    )


class Fetcher:
    """Issue a single GET and return at most ``max_body_bytes`` of the body.

    Cancellation is cooperative: cancelling the task awaiting :meth:`fetch`
    aborts the request. The client's own timeout still applies, so the
    tighter of the two deadlines binds.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        max_body_bytes: int = MAX_BODY_BYTES,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._owns_client = client is None
        self._client = client if client is not None else build_client(timeout)
        self.max_body_bytes = max_body_bytes
        self.headers = {"User-Agent": user_agent}

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def fetch(self, url: str) -> FetchResult:
        """Fetch ``url``, which must already be absolute and schemed.

        Raises a :class:`~app.services.errors.FetchError` subclass for every
        classified failure. Bodies beyond the ceiling are truncated silently.
        """
        try:
            request = self._client.build_request("GET", url, headers=self.headers)
        except (httpx.InvalidURL, ValueError) as exc:
            raise RequestConstructionError(str(exc), url=url) from exc

        logger.debug("Fetching %s", url)
        try:
            response = await self._client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportFailedError(_describe(exc), url=url) from exc

        try:
            if response.status_code != httpx.codes.OK:
                raise HTTPStatusFailedError(
                    response.status_code, response.reason_phrase, url=url
                )
            body = await self._read_limited(response, url)
        finally:
            await response.aclose()

        logger.debug("Fetched %s: %d bytes", url, len(body))
        return FetchResult(
            body=body,
            status_code=response.status_code,
            encoding=response.charset_encoding,
        )

    async def _read_limited(self, response: httpx.Response, url: str) -> bytes:
        buffer = bytearray()
        try:
            async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                buffer.extend(chunk)
                if len(buffer) >= self.max_body_bytes:
                    break
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise BodyReadError(_describe(exc), url=url) from exc
        return bytes(buffer[: self.max_body_bytes])


def _describe(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__
