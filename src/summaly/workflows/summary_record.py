"""Records produced by the summary pipeline."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from ..core.errors import SerializationError
from ..core.keys import (
    K_ACTIVITY_PUB,
    K_DESCRIPTION,
    K_ICON,
    K_OEMBED,
    K_PLAYER,
    K_PLAYER_ALLOW,
    K_PLAYER_HEIGHT,
    K_PLAYER_URL,
    K_PLAYER_WIDTH,
    K_SENSITIVE,
    K_SITENAME,
    K_THUMBNAIL,
    K_TITLE,
    K_URL,
)


def as_number(value: Any) -> Optional[float]:
    """Coerce JSON numbers and numeric strings to a finite float, else None."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


@dataclass
class PlayerInfo:
    url: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None
    allow: List[str] = field(default_factory=list)

    @property
    def active(self) -> bool:
        return bool(self.url)

    def to_dict(self) -> Dict[str, Any]:
        if not self.active:
            return {}
        return {
            K_PLAYER_URL: self.url,
            K_PLAYER_WIDTH: self.width,
            K_PLAYER_HEIGHT: self.height,
            K_PLAYER_ALLOW: list(self.allow),
        }


@dataclass(frozen=True)
class OEmbedPayload:
    """oEmbed 1.0 response; ``type`` and ``version`` are mandatory."""

    type: str
    version: str
    title: Optional[str] = None
    author_name: Optional[str] = None
    author_url: Optional[str] = None
    provider_name: Optional[str] = None
    provider_url: Optional[str] = None
    cache_age: Optional[float] = None
    thumbnail_url: Optional[str] = None
    thumbnail_width: Optional[float] = None
    thumbnail_height: Optional[float] = None
    url: Optional[str] = None
    html: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None

    _NUMERIC = ("cache_age", "thumbnail_width", "thumbnail_height", "width", "height")

    @classmethod
    def from_json(cls, payload: Any) -> "OEmbedPayload":
        if not isinstance(payload, dict):
            raise ValueError("oEmbed payload must be a JSON object")
        kind = payload.get("type")
        version = payload.get("version")
        if not isinstance(kind, str) or not isinstance(version, (str, int, float)):
            raise ValueError("oEmbed payload lacks type/version")
        values: Dict[str, Any] = {"type": kind, "version": str(version)}
        for f in fields(cls):
            if f.name in values or f.name not in payload:
                continue
            raw = payload[f.name]
            if f.name in cls._NUMERIC:
                values[f.name] = as_number(raw)
            elif isinstance(raw, str):
                values[f.name] = raw
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class SummaryRecord:
    url: str
    title: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    sitename: Optional[str] = None
    player: Dict[str, Any] = field(default_factory=dict)
    sensitive: bool = False
    activity_pub: Optional[str] = None
    oembed: Optional[OEmbedPayload] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            K_URL: self.url,
            K_TITLE: self.title,
            K_ICON: self.icon,
            K_DESCRIPTION: self.description,
            K_THUMBNAIL: self.thumbnail,
            K_SITENAME: self.sitename,
            K_PLAYER: dict(self.player),
            K_SENSITIVE: self.sensitive,
            K_ACTIVITY_PUB: self.activity_pub,
            K_OEMBED: self.oembed.to_dict() if self.oembed else None,
        }

    def to_json(self) -> str:
        try:
            return json.dumps(self.to_dict(), ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"summary serialization failed: {exc}") from exc
