import asyncio
from dataclasses import replace

import aiohttp
import pytest
from aiohttp import web

from summaly.workflows.oembed import OEmbedResolver, allow_from_html, merge_player, sanitize_allow
from summaly.workflows.summary_record import OEmbedPayload, PlayerInfo
from summaly.workflows.web_fetch import BoundedFetcher, FetchConfig

CONFIG = FetchConfig(user_agent="summaly-test", timeout_ms=2000, size_limit=64 * 1024)


def test_sanitize_allow_keeps_listed_tokens_in_order():
    value = "autoplay; camera; fullscreen ;web-share; geolocation;picture-in-picture"
    assert sanitize_allow(value) == ["autoplay", "fullscreen", "web-share", "picture-in-picture"]


def test_allow_from_html_reads_first_iframe():
    html = (
        '<div allow="autoplay"></div>'
        '<iframe src="https://player.example/1" allow="encrypted-media; microphone; clipboard-write"></iframe>'
        '<iframe allow="fullscreen"></iframe>'
    )
    assert allow_from_html(html) == ["encrypted-media", "clipboard-write"]
    assert allow_from_html("<p>no player</p>") == []
    assert allow_from_html(None) == []


def test_payload_requires_type_and_version():
    with pytest.raises(ValueError):
        OEmbedPayload.from_json({"version": "1.0"})
    with pytest.raises(ValueError):
        OEmbedPayload.from_json(["not", "an", "object"])
    payload = OEmbedPayload.from_json(
        {"type": "video", "version": "1.0", "width": "480", "height": 270, "cache_age": "soon", "title": 5}
    )
    assert payload.width == 480.0
    assert payload.height == 270.0
    assert payload.cache_age is None
    assert payload.title is None


def test_merge_player_overwrites_dimensions_and_appends_allow():
    player = PlayerInfo(url="https://v.example/1", width=1.0, height=2.0)
    payload = OEmbedPayload(
        type="video",
        version="1.0",
        width=640.0,
        html='<iframe allow="autoplay; fullscreen"></iframe>',
    )
    merge_player(player, payload)
    assert player.width == 640.0
    assert player.height == 2.0
    assert player.allow == ["autoplay", "fullscreen"]


def test_resolve_fetches_percent_encoded_relative_href(serve):
    seen = {}

    async def oembed(request):
        seen["url"] = request.query.get("url")
        seen["ua"] = request.headers.get("User-Agent")
        return web.json_response({"type": "rich", "version": "1.0", "html": "<b>x</b>"})

    async def run():
        async with serve({"/api/oembed": oembed}) as server:
            base = str(server.make_url("/videos/42"))
            async with aiohttp.ClientSession() as session:
                resolver = OEmbedResolver(BoundedFetcher(session))
                return await resolver.resolve("%2Fapi%2Foembed%3Furl%3Dabc", base, CONFIG)

    payload = asyncio.run(run())
    assert payload is not None
    assert payload.type == "rich"
    assert seen == {"url": "abc", "ua": "summaly-test"}


def test_resolve_swallows_bad_payloads(serve, page):
    async def run():
        async with serve({"/html": page("<html>nope</html>")}) as server:
            async with aiohttp.ClientSession() as session:
                resolver = OEmbedResolver(BoundedFetcher(session))
                not_json = await resolver.resolve("/html", str(server.make_url("/")), CONFIG)
                missing = await resolver.resolve("/missing", str(server.make_url("/")), CONFIG)
            url = str(server.make_url("/html"))
        async with aiohttp.ClientSession() as session:
            unreachable = await OEmbedResolver(BoundedFetcher(session)).resolve(url, url, CONFIG)
        return not_json, missing, unreachable

    assert asyncio.run(run()) == (None, None, None)


def test_resolve_treats_deeply_nested_json_as_missing(serve, page):
    nested = page(b"[" * 200000, headers={"Content-Type": "application/json"})

    async def run():
        async with serve({"/oembed": nested}) as server:
            async with aiohttp.ClientSession() as session:
                resolver = OEmbedResolver(BoundedFetcher(session))
                return await resolver.resolve("/oembed", str(server.make_url("/")), replace(CONFIG, size_limit=1024 * 1024))

    assert asyncio.run(run()) is None
