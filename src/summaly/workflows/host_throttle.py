"""Per-host admission control for outbound fetches.

A :class:`Lease` is granted while the host has fewer than ``cap - 1`` active
leases. Releasing a lease does not free the slot immediately: the decrement
runs on the event loop after a short grace delay, which gives every host an
implicit cooldown between bursts.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Set
from urllib.parse import urlparse

from ..core.errors import RateLimitExceeded, ThrottleRejected, UrlParseError
from .fetcher_utils import idna_normalize
from .summary_config import ThrottleConfig

logger = logging.getLogger(__name__)


def host_of(url: str) -> str:
    """Return the host component of ``url`` or raise :class:`UrlParseError`."""

    try:
        host = urlparse(url).hostname
    except ValueError as exc:
        raise UrlParseError(f"unparsable url {url!r}: {exc}") from None
    host = idna_normalize(host or "")
    if not host:
        raise UrlParseError(f"url has no host: {url!r}")
    return host


class Lease:
    """Grant to run one fetch against ``host``.

    Use as an async context manager; the release obligation is discharged on
    every exit path, including exceptions and cancellation of the owning task.
    """

    def __init__(self, throttle: "HostThrottle", host: str) -> None:
        self.throttle = throttle
        self.host = host
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self.throttle._schedule_release(self.host)

    async def __aenter__(self) -> "Lease":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()


class HostThrottle:
    """Process-wide host lease table guarded by a single lock."""

    def __init__(self, config: Optional[ThrottleConfig] = None) -> None:
        self.config = config or ThrottleConfig()
        self._leases: Dict[str, int] = {}
        self._lock: asyncio.Lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()

    def active(self, host: str) -> int:
        return self._leases.get(host, 0)

    @property
    def hosts(self) -> Dict[str, int]:
        return dict(self._leases)

    async def try_acquire(self, url: str) -> Lease:
        """Single admission attempt.

        Raises :class:`UrlParseError` when the url has no host (fatal) and
        :class:`ThrottleRejected` when the host is at capacity (retryable).
        """

        host = host_of(url)
        async with self._lock:
            active = self._leases.get(host, 0) + 1
            if active >= self.config.cap:
                raise ThrottleRejected(host, active - 1)
            self._leases[host] = active
        return Lease(self, host)

    async def acquire(self, url: str) -> Lease:
        """Acquire with the fixed-backoff retry policy."""

        attempts = max(1, self.config.max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return await self.try_acquire(url)
            except ThrottleRejected as exc:
                logger.debug("throttle attempt %d/%d rejected: %s", attempt, attempts, exc)
                await asyncio.sleep(self.config.retry_delay)
        raise RateLimitExceeded(f"too many concurrent requests to {host_of(url)}")

    def _schedule_release(self, host: str) -> None:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._release_later(host))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _release_later(self, host: str) -> None:
        await asyncio.sleep(self.config.release_grace)
        async with self._lock:
            active = self._leases.pop(host, 0)
            if active > 1:
                self._leases[host] = active - 1

    async def wait_idle(self) -> None:
        """Wait until every scheduled lease release has run."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
