from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import aiohttp

from ..core.errors import ContentTooLarge, FetchTimeoutError, NetworkError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass
class FetchConfig:
    """Per-request parameters for a bounded fetch."""

    user_agent: str
    timeout_ms: int
    size_limit: int
    accept_language: Optional[str] = None
    proxy: Optional[str] = None

    @property
    def timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.timeout_ms / 1000.0)

    def headers(self) -> Dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if self.accept_language:
            headers["Accept-Language"] = self.accept_language
        return headers


@dataclass
class FetchOutcome:
    """Bytes of one retrieval plus the response's declared size hint."""

    url: str
    status: int
    body: bytes = field(repr=False)
    headers: Mapping[str, str] = field(default_factory=dict)
    length_hint: Optional[int] = None

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")


def effective_timeout_ms(ceiling_ms: int, requested_ms: Optional[int]) -> int:
    if requested_ms is None:
        return ceiling_ms
    return min(ceiling_ms, requested_ms)


async def read_bounded(resp: aiohttp.ClientResponse, limit: int) -> bytes:
    """Read ``resp`` body, failing as soon as it grows past ``limit`` bytes."""

    declared = resp.content_length
    if declared is not None and declared > limit:
        raise ContentTooLarge(declared, limit, declared=True)
    buffer = bytearray()
    async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
        buffer.extend(chunk)
        if len(buffer) > limit:
            resp.close()
            raise ContentTooLarge(len(buffer), limit)
    return bytes(buffer)


class BoundedFetcher:
    """GET remote documents with a byte ceiling enforced while streaming."""

    def __init__(self, session: aiohttp.ClientSession) -> None:
        self.session = session

    async def fetch(self, url: str, config: FetchConfig) -> FetchOutcome:
        request_kwargs = {}
        if config.proxy:
            request_kwargs["proxy"] = config.proxy
        try:
            async with self.session.get(
                url,
                headers=config.headers(),
                timeout=config.timeout,
                **request_kwargs,
            ) as resp:
                body = await read_bounded(resp, config.size_limit)
                return FetchOutcome(
                    url=url,
                    status=resp.status,
                    body=body,
                    headers=resp.headers,
                    length_hint=resp.content_length,
                )
        except asyncio.TimeoutError as exc:
            logger.info("fetch timed out %s after %dms", url, config.timeout_ms)
            raise FetchTimeoutError(f"timeout after {config.timeout_ms}ms", cause=exc) from exc
        except aiohttp.ClientError as exc:
            logger.info("fetch failed %s: %s", url, exc)
            raise NetworkError(f"{type(exc).__name__}: {exc}", cause=exc) from exc
        except ValueError as exc:
            # yarl rejects some malformed URLs before a connection is made
            raise NetworkError(f"invalid url: {exc}", cause=exc) from exc
