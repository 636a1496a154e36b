"""HTTP front end: query in, JSON summary or mapped error out."""

from __future__ import annotations

import logging
from typing import Optional

import aiohttp
from aiohttp import web

from .core.errors import InternalError, SummalyError
from .workflows.host_throttle import HostThrottle
from .workflows.summarizer import RequestParams, Summarizer
from .workflows.summary_config import HDR_PROXY_ERROR, SUCCESS_CACHE_CONTROL, ServiceConfig

logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", ServiceConfig)
THROTTLE_KEY = web.AppKey("throttle", HostThrottle)
RUNTIME_KEY = web.AppKey("runtime", dict)


def _with_static_headers(resp: web.StreamResponse, config: ServiceConfig) -> web.StreamResponse:
    for name, value in config.header_pairs():
        resp.headers.add(name, value)
    return resp


def error_response(exc: SummalyError, config: ServiceConfig) -> web.Response:
    resp = web.Response(status=exc.status)
    if exc.header_text:
        resp.headers[HDR_PROXY_ERROR] = exc.header_text
    if exc.cache_control:
        resp.headers["Cache-Control"] = exc.cache_control
    return _with_static_headers(resp, config)


async def handle_summary(request: web.Request) -> web.StreamResponse:
    config = request.app[CONFIG_KEY]
    summarizer: Summarizer = request.app[RUNTIME_KEY]["summarizer"]
    try:
        params = RequestParams.from_query(request.query)
        logger.info(params.log_line())
        record = await summarizer.summarize(params)
        body = record.to_json()
    except SummalyError as exc:
        logger.info("summary failed %s: %s", request.query.get("url"), exc)
        return error_response(exc, config)
    except Exception:
        logger.exception("summary crashed %s", request.query.get("url"))
        return error_response(InternalError(), config)
    resp = web.Response(text=body, content_type="application/json")
    resp.headers["Cache-Control"] = SUCCESS_CACHE_CONTROL
    resp.enable_compression()
    return _with_static_headers(resp, config)


async def _session_context(app: web.Application):
    async with aiohttp.ClientSession() as session:
        app[RUNTIME_KEY]["summarizer"] = Summarizer(app[CONFIG_KEY], session, app[THROTTLE_KEY])
        yield
        await app[THROTTLE_KEY].wait_idle()


def create_app(config: ServiceConfig, throttle: Optional[HostThrottle] = None) -> web.Application:
    app = web.Application()
    app[CONFIG_KEY] = config
    app[THROTTLE_KEY] = throttle or HostThrottle()
    app[RUNTIME_KEY] = {}
    app.cleanup_ctx.append(_session_context)
    app.router.add_get("/", handle_summary)
    app.router.add_get("/{tail:.*}", handle_summary)
    return app


def run(config: ServiceConfig) -> None:
    host, port = config.bind_host_port()
    web.run_app(create_app(config), host=host, port=port, print=None)
