"""Resolve a user-supplied URL into a link preview.

:class:`PreviewService` validates and normalizes the URL, runs the fetch and
extraction as one asyncio task and races it against a wall-clock budget.
Every classified failure ends up in the returned :class:`PreviewOutcome`;
the caller never sees a :class:`~app.services.errors.PreviewError`.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

from app.schemas.preview import PartialMetadata, PreviewResult
from app.services.errors import ErrorKind, FetchError, InvalidURLError, PreviewError
from app.services.extractor import extract
from app.services.fetcher import Fetcher

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_BUDGET = 15.0
ALLOWED_SCHEMES = ("http", "https")

_SCHEME_PREFIX = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")


class PreviewState(str, Enum):
    """Terminal states of a single resolve call."""

    INVALID_URL = "invalid_url"
    FETCH_FAILED = "fetch_failed"
    TIMED_OUT = "timed_out"
    DONE = "done"


@dataclass(frozen=True)
class PreviewOutcome:
    state: PreviewState
    result: PreviewResult
    error_kind: ErrorKind | None = None

    @property
    def timed_out(self) -> bool:
        return self.state is PreviewState.TIMED_OUT

    @property
    def cacheable(self) -> bool:
        """Only a completed extraction may be cached downstream."""
        return self.state is PreviewState.DONE

    @classmethod
    def from_error(
        cls, state: PreviewState, url: str, error: PreviewError
    ) -> "PreviewOutcome":
        return cls(
            state=state,
            result=PreviewResult(url=url, error=error.message),
            error_kind=error.kind,
        )


def normalize_url(raw_url: str) -> str:
    """Return ``raw_url`` as an absolute http(s) URL.

    A URL without a scheme gets ``https://`` prepended and is otherwise left
    untouched. Raises :class:`InvalidURLError` when the result cannot be used.
    """
    for char in raw_url:
        if char.isspace() or ord(char) < 0x20 or ord(char) == 0x7F:
            raise InvalidURLError(f"invalid character {char!r} in URL", url=raw_url)

    url = raw_url if _SCHEME_PREFIX.match(raw_url) else f"https://{raw_url}"
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError for a malformed port
    except ValueError as exc:
        raise InvalidURLError(str(exc), url=raw_url) from exc

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidURLError(
            f"unsupported protocol scheme {parts.scheme!r}", url=raw_url
        )
    if not parts.hostname:
        raise InvalidURLError(f"missing host in {raw_url!r}", url=raw_url)
    return url


def _consume_late_result(task: asyncio.Task) -> None:
    # The caller gave up on this task; mark its exception as retrieved.
    if not task.cancelled():
        task.exception()


class PreviewService:
    def __init__(
        self, fetcher: Fetcher, *, budget: float = DEFAULT_PREVIEW_BUDGET
    ) -> None:
        self.fetcher = fetcher
        self.budget = budget

    async def _fetch_and_extract(self, url: str) -> PartialMetadata:
        fetched = await self.fetcher.fetch(url)
        # Off the event loop so the budget still fires while markup is scanned.
        return await asyncio.to_thread(extract, fetched.body, fetched.encoding)

    async def resolve(
        self, raw_url: str, budget: float | None = None
    ) -> PreviewOutcome:
        """Fetch ``raw_url`` and extract its preview within ``budget`` seconds.

        Cancelling the coroutine awaiting this call cancels the fetch as well.
        """
        try:
            url = normalize_url(raw_url)
        except InvalidURLError as exc:
            logger.info(
                "Rejected preview URL",
                extra={"url": raw_url, "error_kind": exc.kind.value},
            )
            return PreviewOutcome.from_error(PreviewState.INVALID_URL, raw_url, exc)

        budget = self.budget if budget is None else budget
        task = asyncio.create_task(self._fetch_and_extract(url))
        try:
            done, _ = await asyncio.wait({task}, timeout=budget)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if not done:
            task.cancel()
            task.add_done_callback(_consume_late_result)
            logger.warning(
                "Preview timed out after %.1fs",
                budget,
                extra={"url": url, "error_kind": ErrorKind.TIMED_OUT.value},
            )
            return PreviewOutcome(
                state=PreviewState.TIMED_OUT,
                result=PreviewResult(url=url),
                error_kind=ErrorKind.TIMED_OUT,
            )

        try:
            metadata = task.result()
        except FetchError as exc:
            logger.info(
                "Preview failed: %s",
                exc.message,
                extra={"url": url, "error_kind": exc.kind.value},
            )
            return PreviewOutcome.from_error(PreviewState.FETCH_FAILED, url, exc)

        return PreviewOutcome(
            state=PreviewState.DONE,
            result=PreviewResult.from_metadata(url, metadata),
        )
