"""Charset resolution and decoding for fetched HTML.

Charset hints are read with a lenient pre-scan: every ``<meta ...>`` tag in
the raw bytes is copied into a small synthetic document, so malformed markup
elsewhere in the page never prevents the hints from being found.
"""

from __future__ import annotations

import re
from typing import List, Mapping, Optional, Tuple

from bs4 import BeautifulSoup
import webencodings

__all__ = [
    "scan_meta_tags",
    "meta_charset_hints",
    "charset_from_content_type",
    "lookup_encoding",
    "resolve_encoding",
    "decode_bytes_auto",
]

_META_OPEN = re.compile(rb"<meta ", re.I)
_CHARSET_RE = re.compile(r"charset=([^\s;]+)", re.I)

# WHATWG shift_jis is the Windows superset.
_CODEC_OVERRIDES = {"shift_jis": "cp932"}


def scan_meta_tags(body: bytes) -> List[str]:
    """Return every ``<meta ...>`` fragment, matched up to the next ``>``.

    Fragments that are not valid UTF-8 are skipped.
    """

    fragments: List[str] = []
    pos = 0
    while True:
        match = _META_OPEN.search(body, pos)
        if match is None:
            break
        end = body.find(b">", match.end())
        if end < 0:
            break
        try:
            attrs = body[match.end():end].decode("utf-8")
        except UnicodeDecodeError:
            attrs = None
        if attrs is not None:
            fragments.append(f"<meta {attrs}>")
        pos = end + 1
    return fragments


def meta_charset_hints(body: bytes) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(http_equiv_content, meta_charset)`` from the pre-scan.

    The last occurrence of each kind wins.
    """

    fragments = scan_meta_tags(body)
    if not fragments:
        return None, None
    soup = BeautifulSoup("\n".join(fragments), "lxml")
    content_type: Optional[str] = None
    charset: Optional[str] = None
    for meta in soup.find_all("meta"):
        http_equiv = (meta.get("http-equiv") or "").lower()
        content = meta.get("content")
        if http_equiv == "content-type" and content is not None:
            content_type = content
        if meta.get("charset") is not None:
            charset = meta.get("charset")
    return content_type, charset


def charset_from_content_type(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    found: Optional[str] = None
    for part in value.split(";"):
        match = _CHARSET_RE.search(part)
        if match:
            found = match.group(1).strip(' "\'').lower()
    return found


def _content_type_header(headers: Optional[Mapping[str, str]]) -> Optional[str]:
    if not headers:
        return None
    for name, value in headers.items():
        if name.lower() == "content-type":
            return value
    return None


def lookup_encoding(label: Optional[str]) -> Optional[str]:
    """Map a charset label to a Python codec name, or None if unknown.

    Labels follow the WHATWG encoding table, so ``iso-8859-1`` decodes as
    windows-1252 and ``windows-31j`` as Shift_JIS.
    """

    if not label:
        return None
    encoding = webencodings.lookup(label)
    if encoding is None:
        return None
    return _CODEC_OVERRIDES.get(encoding.name, encoding.codec_info.name)


def resolve_encoding(body: bytes, headers: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Pick the document encoding.

    The HTTP header charset is the baseline, a ``http-equiv`` content-type in
    the document overrides it and an explicit ``meta charset`` overrides both.
    """

    encoding = lookup_encoding(charset_from_content_type(_content_type_header(headers)))
    equiv_content, meta_charset = meta_charset_hints(body)
    equiv_encoding = lookup_encoding(charset_from_content_type(equiv_content))
    if equiv_encoding:
        encoding = equiv_encoding
    explicit = lookup_encoding(meta_charset)
    if explicit:
        encoding = explicit
    return encoding


def decode_bytes_auto(body: bytes, headers: Optional[Mapping[str, str]] = None) -> str:
    """Decode HTTP bytes using header and meta hints with lossy UTF-8 fallback."""

    encoding = resolve_encoding(body, headers)
    if encoding and encoding != "utf-8":
        try:
            text = body.decode(encoding, errors="replace")
        except (LookupError, UnicodeError):
            text = ""
        if text:
            return text
    return body.decode("utf-8", errors="replace")
