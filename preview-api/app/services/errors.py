from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of every way a preview can fail."""

    INVALID_URL = "invalid_url"
    REQUEST_CONSTRUCTION_FAILED = "request_construction_failed"
    TRANSPORT_FAILED = "transport_failed"
    HTTP_ERROR = "http_error"
    BODY_READ_FAILED = "body_read_failed"
    TIMED_OUT = "timed_out"


class PreviewError(Exception):
    """Base class for classified preview failures."""

    kind: ErrorKind

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url


class InvalidURLError(PreviewError):
    """The input could not be turned into an absolute http(s) URL."""

    kind = ErrorKind.INVALID_URL

    def __init__(self, detail: str, *, url: str | None = None) -> None:
        super().__init__(f"Invalid URL format: {detail}", url=url)


class FetchError(PreviewError):
    """Base class for failures raised by the fetcher."""


class RequestConstructionError(FetchError):
    kind = ErrorKind.REQUEST_CONSTRUCTION_FAILED

    def __init__(self, detail: str, *, url: str | None = None) -> None:
        super().__init__(f"Failed to create request: {detail}", url=url)


class TransportFailedError(FetchError):
    """DNS, connect, TLS or other network-level failure."""

    kind = ErrorKind.TRANSPORT_FAILED

    def __init__(self, detail: str, *, url: str | None = None) -> None:
        super().__init__(f"Failed to fetch URL: {detail}", url=url)


class HTTPStatusFailedError(FetchError):
    """The remote answered with something other than 200."""

    kind = ErrorKind.HTTP_ERROR

    def __init__(
        self, status_code: int, reason: str = "", *, url: str | None = None
    ) -> None:
        message = f"HTTP error: {status_code} {reason}".rstrip()
        super().__init__(message, url=url)
        self.status_code = status_code


class BodyReadError(FetchError):
    kind = ErrorKind.BODY_READ_FAILED

    def __init__(self, detail: str, *, url: str | None = None) -> None:
        super().__init__(f"Failed to read response body: {detail}", url=url)


__all__ = [
    "ErrorKind",
    "PreviewError",
    "InvalidURLError",
    "FetchError",
    "RequestConstructionError",
    "TransportFailedError",
    "HTTPStatusFailedError",
    "BodyReadError",
]
