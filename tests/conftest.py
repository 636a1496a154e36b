"""Shared fixtures: a throwaway upstream site served by aiohttp."""

from contextlib import asynccontextmanager

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


@asynccontextmanager
async def _serve(routes):
    """Serve ``routes`` (path -> handler) on localhost for the duration of the block."""

    app = web.Application()
    for path, handler in routes.items():
        app.router.add_get(path, handler)
    server = TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


def html_handler(body, *, charset="utf-8", status=200, headers=None):
    async def handler(request):
        payload = body if isinstance(body, bytes) else body.encode(charset)
        resp = web.Response(body=payload, status=status, headers=headers or {})
        if "Content-Type" not in (headers or {}):
            resp.content_type = "text/html"
        return resp

    return handler


@pytest.fixture
def serve():
    return _serve


@pytest.fixture
def page():
    return html_handler
