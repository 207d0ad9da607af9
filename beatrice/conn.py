"""A WebSocket seen as a byte stream, and the dispatch to the protocol handlers."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

import aiohttp

from .config import Config
from .dns import doh
from .shadowsocks import process_shadowsocks
from .trojan import process_trojan
from .vless import process_vless
from .vmess import process_vmess

log = logging.getLogger(__name__)

_PEEK_LENGTH = 62
_CHUNK_SIZE = 65535
_CLOSING = frozenset(
    {aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED}
)
_RELAY_ERRORS = (OSError, EOFError, aiohttp.ClientError)


class ProxyStream:
    """Buffered reads from the binary messages of a WebSocket; writes go out as messages.

    The socket must offer a coroutine ``receive()`` yielding messages with
    ``type`` and ``data`` attributes, and a coroutine ``send_bytes(data)``.
    """

    def __init__(self, config: Config, ws) -> None:
        self.config = config
        self.ws = ws
        self._buffer = bytearray()
        self._eof = False

    async def fill_buffer_until(self, n: int) -> None:
        """Receive messages until ``n`` bytes are buffered or the socket closes."""
        while len(self._buffer) < n and not self._eof:
            msg = await self.ws.receive()
            if msg.type == aiohttp.WSMsgType.BINARY:
                self._buffer.extend(msg.data)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                raise ConnectionError(str(msg.data))
            elif msg.type in _CLOSING:
                self._eof = True

    def peek_buffer(self, n: int) -> bytes:
        """Return up to ``n`` buffered bytes without consuming them."""
        return bytes(self._buffer[:n])

    async def read(self, n: int) -> bytes:
        """Return up to ``n`` bytes, or ``b""`` once the socket has ended."""
        while not self._buffer:
            if self._eof:
                return b""
            msg = await self.ws.receive()
            if msg.type == aiohttp.WSMsgType.BINARY:
                self._buffer.extend(msg.data)
            elif msg.type != aiohttp.WSMsgType.TEXT:
                self._eof = True
        chunk = bytes(self._buffer[:n])
        del self._buffer[:n]
        return chunk

    async def read_exact(self, n: int) -> bytes:
        """Return exactly ``n`` bytes or raise ``asyncio.IncompleteReadError``."""
        data = bytearray()
        while len(data) < n:
            chunk = await self.read(n - len(data))
            if not chunk:
                raise asyncio.IncompleteReadError(bytes(data), n)
            data.extend(chunk)
        return bytes(data)

    async def read_u8(self) -> int:
        return (await self.read_exact(1))[0]

    async def read_u16(self) -> int:
        return int.from_bytes(await self.read_exact(2), "big")

    async def write(self, data: bytes) -> int:
        """Send ``data`` as one binary message and return its length."""
        data = bytes(data)
        await self.ws.send_bytes(data)
        return len(data)

    async def process(self) -> None:
        """Tell the protocol from the first bytes and hand the stream to its handler."""
        await self.fill_buffer_until(_PEEK_LENGTH)
        peeked = self.peek_buffer(_PEEK_LENGTH)
        if not peeked:
            raise ConnectionError("connection closed before a request arrived")

        if peeked[0] == 0:
            await process_vless(self)
        elif peeked[0] in (1, 3):
            await process_shadowsocks(self)
        elif peeked[56:58] == b"\r\n":
            await process_trojan(self)
        else:
            await process_vmess(self)

    async def handle_tcp_outbound(self, addr: str, port: int) -> None:
        """Connect to ``addr:port`` and copy bytes both ways until both sides end."""
        reader, writer = await asyncio.open_connection(addr, port)

        async def upstream() -> None:
            while data := await self.read(_CHUNK_SIZE):
                writer.write(data)
                await writer.drain()
            if writer.can_write_eof():
                writer.write_eof()

        async def downstream() -> None:
            while data := await reader.read(_CHUNK_SIZE):
                await self.write(data)

        tasks = [asyncio.ensure_future(upstream()), asyncio.ensure_future(downstream())]
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            writer.close()
            with suppress(OSError):
                await writer.wait_closed()

    async def handle_udp_outbound(self) -> None:
        """Forward one datagram to the DNS-over-HTTPS resolver."""
        data = await self.read(_CHUNK_SIZE)
        try:
            await doh(data)
        except _RELAY_ERRORS as exc:
            log.debug("dns over https failed: %s", exc)
            return
        await self.write(data)

    async def connect_pool(self, addr: str, port: int, is_tcp: bool) -> None:
        """Relay to the target and then to the fallback proxy, logging failures."""
        log.info("connecting to upstream %s:%s [is_tcp=%s]", addr, port, is_tcp)
        if is_tcp:
            for target_addr, target_port in (
                (addr, port),
                (self.config.proxy_addr, self.config.proxy_port),
            ):
                try:
                    await self.handle_tcp_outbound(target_addr, target_port)
                except _RELAY_ERRORS as exc:
                    log.error("error handling tcp: %s", exc)
        else:
            try:
                await self.handle_udp_outbound()
            except _RELAY_ERRORS as exc:
                log.error("error handling udp: %s", exc)