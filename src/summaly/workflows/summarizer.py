"""Summary pipeline: throttle, fetch, decode, extract, oEmbed, normalize."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Mapping, Optional

import aiohttp

from ..core.errors import RejectedScheme, UrlParseError
from ..core.keys import Q_CONTENT_LENGTH_LIMIT, Q_LANG, Q_RESPONSE_TIMEOUT, Q_URL, Q_USER_AGENT
from .fetcher_utils import default_icon, normalize_url, resolve_url
from .head_extract import HeadExtraction, extract_head
from .host_throttle import HostThrottle
from .html_normalize import decode_bytes_auto
from .oembed import OEmbedResolver, merge_player
from .summary_config import (
    ICON_PROXY_FILENAME,
    REJECTED_SCHEME_PREFIX,
    THUMBNAIL_PROXY_FILENAME,
    ServiceConfig,
)
from .summary_record import OEmbedPayload, SummaryRecord
from .web_fetch import BoundedFetcher, FetchConfig, effective_timeout_ms

logger = logging.getLogger(__name__)


def _optional_int(query: Mapping[str, str], key: str) -> Optional[int]:
    raw = query.get(key)
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise UrlParseError(f"{key} must be an integer, got {raw!r}") from None
    if value < 0:
        raise UrlParseError(f"{key} must not be negative")
    return value


@dataclass(frozen=True)
class RequestParams:
    url: str
    lang: Optional[str] = None
    user_agent: Optional[str] = None
    response_timeout: Optional[int] = None
    content_length_limit: Optional[int] = None

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> "RequestParams":
        url = query.get(Q_URL)
        if not url:
            raise UrlParseError("missing url parameter")
        return cls(
            url=url,
            lang=query.get(Q_LANG) or None,
            user_agent=query.get(Q_USER_AGENT) or None,
            response_timeout=_optional_int(query, Q_RESPONSE_TIMEOUT),
            content_length_limit=_optional_int(query, Q_CONTENT_LENGTH_LIMIT),
        )

    def log_line(self, now: Optional[datetime] = None) -> str:
        stamp = (now or datetime.now(timezone.utc)).isoformat(timespec="milliseconds")
        return "\t".join(
            [
                stamp.replace("+00:00", "Z"),
                self.url,
                f"lang:{self.lang!r}",
                f"user_agent:{self.user_agent!r}",
                f"response_timeout:{self.response_timeout!r}",
                f"content_length_limit:{self.content_length_limit!r}",
            ]
        )


class Summarizer:
    """Turn a remote URL into a :class:`SummaryRecord`."""

    def __init__(
        self,
        config: ServiceConfig,
        session: aiohttp.ClientSession,
        throttle: Optional[HostThrottle] = None,
    ) -> None:
        self.config = config
        self.throttle = throttle or HostThrottle()
        self.fetcher = BoundedFetcher(session)
        self.oembed = OEmbedResolver(self.fetcher)

    def fetch_config(self, params: RequestParams) -> FetchConfig:
        limit = params.content_length_limit
        return FetchConfig(
            user_agent=params.user_agent or self.config.user_agent,
            timeout_ms=effective_timeout_ms(self.config.timeout, params.response_timeout),
            size_limit=self.config.max_size if limit is None else limit,
            accept_language=params.lang,
            proxy=self.config.proxy,
        )

    async def summarize(self, params: RequestParams) -> SummaryRecord:
        if params.url.startswith(REJECTED_SCHEME_PREFIX):
            raise RejectedScheme(params.url)
        lease = await self.throttle.acquire(params.url)
        async with lease:
            return await self._summarize_locked(params)

    async def _summarize_locked(self, params: RequestParams) -> SummaryRecord:
        config = self.fetch_config(params)
        outcome = await self.fetcher.fetch(params.url, config)
        logger.debug("fetched %s status=%d bytes=%d", params.url, outcome.status, len(outcome.body))
        text = decode_bytes_auto(outcome.body, outcome.headers)
        draft = extract_head(text, params.url)

        oembed = None
        if draft.oembed_href:
            oembed_config = replace(config, accept_language=None)
            oembed = await self.oembed.resolve(draft.oembed_href, params.url, oembed_config)
            if oembed is not None:
                merge_player(draft.player, oembed)
        return self._finalize(draft, params.url, oembed)

    def _finalize(
        self,
        draft: HeadExtraction,
        base_url: str,
        oembed: Optional[OEmbedPayload],
    ) -> SummaryRecord:
        media_proxy = self.config.media_proxy
        icon = draft.icon if draft.icon is not None else default_icon(base_url)
        thumbnail = draft.thumbnail
        if thumbnail is not None:
            thumbnail = normalize_url(thumbnail, base_url, media_proxy, THUMBNAIL_PROXY_FILENAME)
        return SummaryRecord(
            url=resolve_url(draft.url, base_url),
            title=draft.title,
            icon=normalize_url(icon, base_url, media_proxy, ICON_PROXY_FILENAME),
            description=draft.description,
            thumbnail=thumbnail,
            sitename=draft.sitename,
            player=draft.player.to_dict(),
            oembed=oembed,
        )
