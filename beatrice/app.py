"""The HTTP front end: a share link, WebSocket tunnels and a plain-page fallback."""

from __future__ import annotations

import argparse
import asyncio
import base64
import json
import logging
import os
import re
from typing import Optional, Sequence, Tuple, Union
from uuid import UUID

import aiohttp
from aiohttp import web

from .config import DEFAULT_PROXY_PORT, Config
from .conn import ProxyStream

log = logging.getLogger(__name__)

UUID_KEY = web.AppKey("uuid", UUID)
FALLBACK_URL_KEY = web.AppKey("fallback_url", str)

DEFAULT_FALLBACK_URL = "https://example.com"
LINK_ADDRESS = "162.159.16.149"
LINK_PORT = "80"
LINK_DESCRIPTION = "replace the IP address in the configuration with a clean one"

_PROXYIP_PATTERN = re.compile(r"^.+-\d+\Z")
_ASCII_DIGITS = re.compile(r"[0-9]+")
_TUNNEL_ERRORS = (OSError, EOFError, ValueError, aiohttp.ClientError)


def parse_proxyip(value: str) -> Optional[Tuple[str, int]]:
    """Split an ``addr-port`` path segment, or return ``None`` if it is not one."""
    if not _PROXYIP_PATTERN.match(value):
        return None
    addr, _, port_text = value.partition("-")
    if not _ASCII_DIGITS.fullmatch(port_text):
        return None
    port = int(port_text)
    if port > 0xFFFF:
        return None
    return addr, port


def parse_uuid(value: Optional[str]) -> UUID:
    """Parse a user id; anything unparsable becomes the nil id."""
    try:
        return UUID(str(value).strip())
    except (ValueError, TypeError):
        return UUID(int=0)


def make_link(host: str, uuid: Union[UUID, str]) -> str:
    """Return the ``vmess://`` share link for this host and user id."""
    settings = {
        "ps": "tunl",
        "v": "2",
        "add": LINK_ADDRESS,
        "port": LINK_PORT,
        "id": str(uuid),
        "aid": "0",
        "scy": "zero",
        "net": "ws",
        "type": "none",
        "host": host,
        "path": "",
        "tls": "",
        "sni": "",
        "alpn": "",
    }
    text = json.dumps(settings, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return "vmess://" + base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii")


def _json_response(payload: dict) -> web.Response:
    return web.Response(
        text=json.dumps(payload, separators=(",", ":"), ensure_ascii=False),
        content_type="application/json",
    )


async def _link(request: web.Request) -> web.Response:
    host = request.url.host or ""
    link = make_link(host, request.app[UUID_KEY])
    return _json_response({"description": LINK_DESCRIPTION, "link": link})


async def _fallback(url: str) -> web.Response:
    async with aiohttp.ClientSession() as session:
        async with session.get(url) as upstream:
            body = await upstream.read()
            headers = {}
            content_type = upstream.headers.get("Content-Type")
            if content_type:
                headers["Content-Type"] = content_type
            return web.Response(body=body, status=upstream.status, headers=headers)


async def _tunnel(request: web.Request) -> web.StreamResponse:
    host = request.url.host or ""
    config = Config(
        uuid=request.app[UUID_KEY], host=host, proxy_addr=host, proxy_port=DEFAULT_PROXY_PORT
    )
    target = parse_proxyip(request.match_info["proxyip"])
    if target is not None:
        config = config.with_proxy(*target)

    if request.headers.get("Upgrade", "") != "websocket":
        return await _fallback(request.app[FALLBACK_URL_KEY])

    ws = web.WebSocketResponse()
    await ws.prepare(request)
    try:
        await ProxyStream(config, ws).process()
    except asyncio.CancelledError:
        raise
    except _TUNNEL_ERRORS as exc:
        log.error("[tunnel]: %s", exc)
    finally:
        await ws.close()
    return ws


def create_app(uuid: Union[UUID, str]) -> web.Application:
    """Build the web application serving ``/link`` and ``/{proxyip}``."""
    app = web.Application()
    app[UUID_KEY] = uuid if isinstance(uuid, UUID) else parse_uuid(uuid)
    app[FALLBACK_URL_KEY] = DEFAULT_FALLBACK_URL
    app.router.add_route("*", "/link", _link)
    app.router.add_route("*", "/{proxyip}", _tunnel)
    return app


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Run the server; the user id comes from ``--uuid`` or the ``UUID`` variable."""
    parser = argparse.ArgumentParser(prog="beatrice", description=__doc__)
    parser.add_argument("--uuid", default=os.environ.get("UUID"), help="user id")
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    args = parser.parse_args(argv)
    if args.uuid is None:
        parser.error("a user id is required: pass --uuid or set UUID")

    logging.basicConfig(level=logging.INFO)
    web.run_app(create_app(parse_uuid(args.uuid)), host=args.host, port=args.port)