import socket

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from beatrice.dns import doh


def make_app(seen):
    async def handler(request):
        seen["content_type"] = request.headers.get("Content-Type")
        seen["accept"] = request.headers.get("Accept")
        seen["method"] = request.method
        body = await request.read()
        return web.Response(body=body[::-1], content_type="application/dns-message")

    app = web.Application()
    app.router.add_post("/dns-query", handler)
    return app


@pytest.mark.asyncio
async def test_doh_posts_query_and_returns_body():
    seen = {}
    server = TestServer(make_app(seen))
    await server.start_server()
    try:
        query = b"\x12\x34\x01\x00\x00\x01"
        answer = await doh(query, url=str(server.make_url("/dns-query")))
    finally:
        await server.close()
    assert answer == query[::-1]
    assert seen["method"] == "POST"
    assert seen["content_type"] == "application/dns-message"
    assert seen["accept"] == "application/dns-message"


@pytest.mark.asyncio
async def test_doh_connection_refused_raises():
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
    with pytest.raises(aiohttp.ClientConnectionError):
        await doh(b"\x00", url=f"http://127.0.0.1:{port}/dns-query")