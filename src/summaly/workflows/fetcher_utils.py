"""Shared URL helpers used by the summary workflow."""

from __future__ import annotations

import posixpath
from typing import List, Optional
from urllib.parse import quote, urlparse

_DEFAULT_PORTS = {"http": 80, "https": 443}


def idna_normalize(host: str) -> str:
    """Return a lowercase, IDNA-normalized host name."""

    h = (host or "").strip().rstrip(".").lower()
    if not h:
        return ""
    try:
        h = h.encode("idna").decode("ascii")
    except UnicodeError:
        pass
    return h


def origin_of(base_url: str) -> str:
    """Return ``scheme://host[:port]`` for ``base_url``."""

    parsed = urlparse(base_url)
    host = parsed.hostname or "localhost"
    if ":" in host:
        host = f"[{host}]"
    scheme = parsed.scheme or "https"
    port = parsed.port
    if port == _DEFAULT_PORTS.get(scheme):
        port = None
    return f"{scheme}://{host}:{port}" if port is not None else f"{scheme}://{host}"


def default_icon(base_url: str) -> str:
    return f"{origin_of(base_url)}/favicon.ico"


def _collapse_segments(path: str) -> List[str]:
    kept: List[str] = []
    for part in path.split("/"):
        if not part or part == ".":
            continue
        if part == "..":
            if kept:
                kept.pop()
            continue
        kept.append(part)
    return kept


def resolve_url(value: str, base_url: str) -> str:
    """Resolve ``value`` against ``base_url``.

    Protocol-relative and root-relative values take the base scheme and origin.
    Anything not starting with ``http`` is joined onto the base path's
    directory with ``.``/``..`` collapsed; everything else passes through.
    """

    parsed = urlparse(base_url)
    if value.startswith("//"):
        return f"{parsed.scheme or 'https'}:{value}"
    if value.startswith("/"):
        return f"{origin_of(base_url)}{value}"
    if value.startswith("http"):
        return value
    directory = posixpath.dirname(parsed.path or "/")
    joined = posixpath.join(directory or "/", value)
    path = "".join(f"/{part}" for part in _collapse_segments(joined))
    return f"{origin_of(base_url)}{path}"


def proxy_media_url(value: str, media_proxy: Optional[str], filename: str) -> str:
    """Rewrite a resolved media URL through the configured media proxy."""

    if not media_proxy:
        return value
    return f"{media_proxy}{filename}?url={quote(value, safe='-_.~')}"


def normalize_url(
    value: str,
    base_url: str,
    media_proxy: Optional[str] = None,
    proxy_filename: str = "",
) -> str:
    return proxy_media_url(resolve_url(value, base_url), media_proxy, proxy_filename)
