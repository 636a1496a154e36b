"""Secondary oEmbed retrieval and player sanitization.

Any failure here is logged and treated as "no oEmbed data"; the summary
request itself still succeeds.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional
from urllib.parse import unquote

from bs4 import BeautifulSoup, Tag

from ..core.errors import SummalyError
from .fetcher_utils import resolve_url
from .summary_config import PLAYER_ALLOW_LIST
from .summary_record import OEmbedPayload, PlayerInfo
from .web_fetch import BoundedFetcher, FetchConfig

logger = logging.getLogger(__name__)


def sanitize_allow(value: str) -> List[str]:
    """Keep only allow-listed iframe capabilities, in encountered order."""

    tokens: List[str] = []
    for token in value.split(";"):
        token = token.strip()
        if token in PLAYER_ALLOW_LIST:
            tokens.append(token)
    return tokens


def _find_embed_element(html: str) -> Optional[Tag]:
    soup = BeautifulSoup(html, "lxml")
    iframe = soup.find("iframe", attrs={"allow": True})
    if iframe is not None:
        return iframe
    return soup.find(attrs={"allow": True})


def allow_from_html(html: Optional[str]) -> List[str]:
    if not html:
        return []
    try:
        element = _find_embed_element(html)
    except Exception as exc:  # malformed provider markup must not fail the summary
        logger.warning("oembed html unparsable: %s", exc)
        return []
    if element is None:
        return []
    allow = element.get("allow")
    if not isinstance(allow, str):
        allow = " ".join(allow or [])
    return sanitize_allow(allow)


def merge_player(player: PlayerInfo, payload: OEmbedPayload) -> PlayerInfo:
    if payload.width is not None:
        player.width = payload.width
    if payload.height is not None:
        player.height = payload.height
    player.allow.extend(allow_from_html(payload.html))
    return player


class OEmbedResolver:
    def __init__(self, fetcher: BoundedFetcher) -> None:
        self.fetcher = fetcher

    async def resolve(self, href: str, base_url: str, config: FetchConfig) -> Optional[OEmbedPayload]:
        """Fetch and parse the oEmbed document linked from the head."""

        target = resolve_url(unquote(href), base_url)
        try:
            outcome = await self.fetcher.fetch(target, config)
        except SummalyError as exc:
            logger.warning("oembed %s %s", target, exc)
            return None
        try:
            return OEmbedPayload.from_json(json.loads(outcome.body))
        except (ValueError, UnicodeDecodeError, RecursionError) as exc:
            logger.warning("oembed %s unusable payload: %s", target, exc)
            return None
