"""Summary service defaults and the read-only process configuration.

Centralizes static defaults so the pipeline has no embedded magic strings.
The configuration file is JSON; when it does not exist the defaults are
written to it first so operators get an editable starting point.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..core.errors import ConfigError

CONFIG_PATH_ENV = "SUMMALY_CONFIG_PATH"
DEFAULT_CONFIG_PATH = "config.json"

DEFAULT_BIND_ADDR = "0.0.0.0:12267"
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_USER_AGENT = "https://github.com/yojo-art/summaly-rs"
DEFAULT_MAX_SIZE = 2 * 1024 * 1024
DEFAULT_APPEND_HEADERS = (
    "Content-Security-Policy:default-src 'none'; img-src 'self'; media-src 'self'; style-src 'unsafe-inline'",
    "Access-Control-Allow-Origin:*",
)

# Sentinel scheme refused before any throttle or network work
REJECTED_SCHEME_PREFIX = "coffee://"

# Response cache policy
SUCCESS_CACHE_CONTROL = "public, max-age=1800"
HDR_PROXY_ERROR = "X-Proxy-Error"

# Media proxy filename hints
ICON_PROXY_FILENAME = "icon.webp"
THUMBNAIL_PROXY_FILENAME = "thumbnail.webp"

# iframe capabilities a player may keep
PLAYER_ALLOW_LIST = (
    "autoplay",
    "clipboard-write",
    "fullscreen",
    "encrypted-media",
    "picture-in-picture",
    "web-share",
)

_HEADER_NAME_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


@dataclass(frozen=True)
class ThrottleConfig:
    """Per-host admission policy; a lease is granted while ``count + 1 < cap``."""

    cap: int = 3
    release_grace: float = 0.5
    max_attempts: int = 3
    retry_delay: float = 1.0


@dataclass
class ServiceConfig:
    """Process configuration, loaded once at startup and never mutated."""

    bind_addr: str = DEFAULT_BIND_ADDR
    timeout: int = DEFAULT_TIMEOUT_MS
    user_agent: str = DEFAULT_USER_AGENT
    max_size: int = DEFAULT_MAX_SIZE
    proxy: Optional[str] = None
    media_proxy: Optional[str] = None
    append_headers: List[str] = field(default_factory=lambda: list(DEFAULT_APPEND_HEADERS))

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ServiceConfig":
        if not isinstance(payload, dict):
            raise ConfigError("configuration must be a JSON object")
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in payload.items() if key in known}
        try:
            config = cls(**values)
            config.timeout = int(config.timeout)
            config.max_size = int(config.max_size)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid configuration: {exc}") from exc
        if not isinstance(config.append_headers, list):
            raise ConfigError("append_headers must be a list of 'Name:value' lines")
        return config

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def bind_host_port(self) -> Tuple[str, int]:
        host, sep, port = self.bind_addr.rpartition(":")
        if not sep:
            raise ConfigError(f"bind_addr must be host:port, got {self.bind_addr!r}")
        try:
            return host.strip("[]") or "0.0.0.0", int(port)
        except ValueError as exc:
            raise ConfigError(f"invalid port in bind_addr {self.bind_addr!r}") from exc

    def header_pairs(self) -> List[Tuple[str, str]]:
        """Parse ``append_headers`` lines, skipping malformed ones."""

        pairs: List[Tuple[str, str]] = []
        for line in self.append_headers:
            if not isinstance(line, str):
                continue
            name, sep, value = line.partition(":")
            if not sep or not value:
                continue
            if not _HEADER_NAME_RE.match(name):
                continue
            if "\r" in value or "\n" in value:
                continue
            pairs.append((name, value))
        return pairs


def resolve_config_path(explicit: Optional[Path] = None) -> Path:
    if explicit is not None:
        return Path(explicit)
    env_path = os.getenv(CONFIG_PATH_ENV, "")
    return Path(env_path or DEFAULT_CONFIG_PATH)


def load_config(path: Optional[Path] = None) -> ServiceConfig:
    """Load the JSON config, writing defaults to ``path`` when it is missing."""

    config_path = resolve_config_path(path)
    if not config_path.exists():
        default = ServiceConfig()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(default.to_dict(), indent=2), encoding="utf-8")
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {config_path}: {exc}") from None
    return ServiceConfig.from_dict(payload)
