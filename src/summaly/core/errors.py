"""Error taxonomy for the summary pipeline.

Every fatal pipeline failure derives from :class:`SummalyError` and carries
what the HTTP front end needs to answer: a status code, an optional
``X-Proxy-Error`` text and an optional ``Cache-Control`` value.
"""

from __future__ import annotations

from typing import Optional

SHORT_CACHE = "public, max-age=30"


class SummalyError(Exception):
    """Base class for failures that abort a summary request."""

    status: int = 500
    cache_control: Optional[str] = None

    def __init__(self, message: str = "", *, proxy_error: Optional[str] = None) -> None:
        super().__init__(message)
        self.proxy_error = proxy_error

    @property
    def header_text(self) -> Optional[str]:
        """Proxy error text safe to place into a single header line."""

        if not self.proxy_error:
            return None
        return " ".join(self.proxy_error.splitlines()).strip() or None


class RejectedScheme(SummalyError):
    """The URL uses the sentinel scheme and is refused without network access."""

    status = 418

    def __init__(self, url: str) -> None:
        super().__init__(f"rejected scheme: {url}", proxy_error="I'm a teapot")


class UrlParseError(SummalyError):
    status = 400
    cache_control = SHORT_CACHE


class RateLimitExceeded(SummalyError):
    status = 429
    cache_control = SHORT_CACHE


class ThrottleRejected(Exception):
    """Retryable: the host already has the maximum number of active leases."""

    def __init__(self, host: str, active: int) -> None:
        super().__init__(f"{host} has {active} active leases")
        self.host = host
        self.active = active


class NetworkError(SummalyError):
    status = 500

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message, proxy_error=message)
        self.cause = cause


class FetchTimeoutError(NetworkError):
    pass


class ContentTooLarge(SummalyError):
    status = 500

    def __init__(self, size: int, limit: int, *, declared: bool = False) -> None:
        label = "lengthHint" if declared else "length"
        text = f"{label}:{size}>{limit}"
        super().__init__(text, proxy_error=text)
        self.size = size
        self.limit = limit
        self.declared = declared


class MissingHeadMarkers(SummalyError):
    status = 502

    def __init__(self, marker: str) -> None:
        text = "no head" if marker == "<head" else "no /head"
        super().__init__(f"document has no {marker} marker", proxy_error=text)
        self.marker = marker


class HeadParseError(SummalyError):
    status = 502

    def __init__(self, message: str) -> None:
        super().__init__(message, proxy_error=message)


class SerializationError(SummalyError):
    status = 500


class InternalError(SummalyError):
    """Unexpected failure inside the pipeline."""

    status = 500

    def __init__(self, message: str = "internal error") -> None:
        super().__init__(message, proxy_error=message)


class ConfigError(Exception):
    """Raised at startup when the configuration file cannot be used."""
