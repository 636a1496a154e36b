"""High-level exports for the summary workflows."""

from .fetcher_utils import normalize_url, resolve_url
from .head_extract import HeadExtraction, extract_head
from .host_throttle import HostThrottle, Lease
from .html_normalize import decode_bytes_auto
from .oembed import OEmbedResolver
from .summarizer import RequestParams, Summarizer
from .summary_config import ServiceConfig, ThrottleConfig, load_config
from .summary_record import OEmbedPayload, PlayerInfo, SummaryRecord
from .web_fetch import BoundedFetcher, FetchConfig, FetchOutcome

__all__ = [
    "BoundedFetcher",
    "FetchConfig",
    "FetchOutcome",
    "HeadExtraction",
    "HostThrottle",
    "Lease",
    "OEmbedPayload",
    "OEmbedResolver",
    "PlayerInfo",
    "RequestParams",
    "ServiceConfig",
    "Summarizer",
    "SummaryRecord",
    "ThrottleConfig",
    "decode_bytes_auto",
    "extract_head",
    "load_config",
    "normalize_url",
    "resolve_url",
]
