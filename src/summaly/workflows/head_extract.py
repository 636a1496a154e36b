"""Head-only metadata extraction.

Only the text between ``<head ...>`` and ``</head>`` is parsed. The
resulting top-level nodes are folded in document order, one element at a
time, so precedence depends on where each tag appears: ``<title>`` and the
``msapplication``/``application-name`` hints only fill empty fields while
Open Graph tags overwrite whatever is already there.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from ..core.errors import HeadParseError, MissingHeadMarkers
from .summary_record import PlayerInfo, as_number

__all__ = ["HeadExtraction", "slice_head", "parse_head", "fold_head", "extract_head"]

_HEAD_OPEN = re.compile(r"<head(?=[\s>/])", re.I)
_HEAD_CLOSE = re.compile(r"</head>", re.I)

OEMBED_TYPE = "application/json+oembed"


@dataclass
class HeadExtraction:
    """Partial summary built while folding over the head section."""

    url: str
    title: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    sitename: Optional[str] = None
    player: PlayerInfo = field(default_factory=PlayerInfo)
    oembed_href: Optional[str] = None


def slice_head(text: str) -> str:
    """Return the markup between the head tags or raise MissingHeadMarkers."""

    start = _HEAD_OPEN.search(text)
    if start is None:
        raise MissingHeadMarkers("<head")
    tag_end = text.find(">", start.end())
    if tag_end < 0:
        raise MissingHeadMarkers("</head>")
    end = _HEAD_CLOSE.search(text, tag_end + 1)
    if end is None:
        raise MissingHeadMarkers("</head>")
    return text[tag_end + 1:end.start()]


def parse_head(fragment: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(fragment, "html.parser", multi_valued_attributes=None)
    except Exception as exc:  # bs4 raises ParserRejectedMarkup and parser-specific errors
        raise HeadParseError(f"head parse failed: {exc}") from exc


def _attr(element: Tag, name: str) -> Optional[str]:
    value = element.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        value = " ".join(value)
    return value.strip()


def _key(element: Tag, name: str) -> Optional[str]:
    value = _attr(element, name)
    return value.lower() if value is not None else None


def _title_text(element: Tag) -> str:
    parts = [
        str(child)
        for child in element.children
        if isinstance(child, NavigableString) and not isinstance(child, Comment)
    ]
    return "".join(parts).strip()


# meta[name=...] handlers: fill only when empty
def _tooltip(draft: HeadExtraction, content: str) -> None:
    if draft.description is None:
        draft.description = content


def _application_name(draft: HeadExtraction, content: str) -> None:
    if draft.sitename is None:
        draft.sitename = content
    if draft.title is None:
        draft.title = content


# meta[property=...] handlers
def _og_image(draft: HeadExtraction, content: str) -> None:
    draft.thumbnail = content


def _og_url(draft: HeadExtraction, content: str) -> None:
    draft.url = content


def _og_title(draft: HeadExtraction, content: str) -> None:
    draft.title = content


def _og_description(draft: HeadExtraction, content: str) -> None:
    draft.description = content


def _og_site_name(draft: HeadExtraction, content: str) -> None:
    draft.sitename = content


def _og_video_url(draft: HeadExtraction, content: str) -> None:
    if draft.player.url is None:
        draft.player.url = content


def _og_video_secure_url(draft: HeadExtraction, content: str) -> None:
    draft.player.url = content


def _og_video_width(draft: HeadExtraction, content: str) -> None:
    width = as_number(content)
    if width is not None:
        draft.player.width = width


def _og_video_height(draft: HeadExtraction, content: str) -> None:
    height = as_number(content)
    if height is not None:
        draft.player.height = height


Handler = Callable[[HeadExtraction, str], None]

META_NAME_HANDLERS: Dict[str, Handler] = {
    "msapplication-tooltip": _tooltip,
    "application-name": _application_name,
}

META_PROPERTY_HANDLERS: Dict[str, Handler] = {
    "og:image": _og_image,
    "og:url": _og_url,
    "og:title": _og_title,
    "og:description": _og_description,
    "description": _og_description,
    "og:site_name": _og_site_name,
    "og:video:url": _og_video_url,
    "og:video:secure_url": _og_video_secure_url,
    "og:video:width": _og_video_width,
    "og:video:height": _og_video_height,
}


def _apply_title(draft: HeadExtraction, element: Tag) -> None:
    if draft.title is not None:
        return
    text = _title_text(element)
    if text:
        draft.title = text


def _apply_meta(draft: HeadExtraction, element: Tag) -> None:
    content = _attr(element, "content")
    if content is None:
        return
    name = _key(element, "name")
    if name in META_NAME_HANDLERS:
        META_NAME_HANDLERS[name](draft, content)
    prop = _key(element, "property")
    if prop in META_PROPERTY_HANDLERS:
        META_PROPERTY_HANDLERS[prop](draft, content)


def _apply_link(draft: HeadExtraction, element: Tag) -> None:
    href = _attr(element, "href")
    if href is None:
        return
    rel = _key(element, "rel")
    if rel == "shortcut icon":
        if draft.icon is None:
            draft.icon = href
    elif rel == "icon":
        draft.icon = href
    elif rel == "apple-touch-icon":
        if draft.thumbnail is None:
            draft.thumbnail = href
    elif rel == "alternate" and _key(element, "type") == OEMBED_TYPE:
        draft.oembed_href = href


ELEMENT_HANDLERS: Dict[str, Callable[[HeadExtraction, Tag], None]] = {
    "title": _apply_title,
    "meta": _apply_meta,
    "link": _apply_link,
}


def fold_head(soup: BeautifulSoup, url: str) -> HeadExtraction:
    draft = HeadExtraction(url=url)
    for node in soup.contents:
        if not isinstance(node, Tag):
            continue
        handler = ELEMENT_HANDLERS.get(node.name)
        if handler is not None:
            handler(draft, node)
    return draft


def extract_head(text: str, url: str) -> HeadExtraction:
    """Slice, parse and fold the head section of ``text``.

    ``url`` seeds the summary url; an ``og:url`` tag may replace it.
    """

    return fold_head(parse_head(slice_head(text)), url)

