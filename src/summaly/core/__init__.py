"""Core schema helpers for summaly."""

from .errors import (
    ConfigError,
    ContentTooLarge,
    FetchTimeoutError,
    HeadParseError,
    InternalError,
    MissingHeadMarkers,
    NetworkError,
    RateLimitExceeded,
    RejectedScheme,
    SerializationError,
    SummalyError,
    ThrottleRejected,
    UrlParseError,
)
from .keys import *  # noqa: F401,F403 re-export stable keys

__all__ = [name for name in globals() if name.startswith(("K_", "Q_"))] + [
    "ConfigError",
    "ContentTooLarge",
    "FetchTimeoutError",
    "HeadParseError",
    "InternalError",
    "MissingHeadMarkers",
    "NetworkError",
    "RateLimitExceeded",
    "RejectedScheme",
    "SerializationError",
    "SummalyError",
    "ThrottleRejected",
    "UrlParseError",
]
