"""Address and port fields shared by the VLESS, VMess, Trojan and Shadowsocks headers."""

from __future__ import annotations

import asyncio
from ipaddress import IPv4Address, IPv6Address


class AddressError(ValueError):
    """The address type byte is not one the protocols define."""


class BufferReader:
    """Async reader over an in-memory byte string."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    async def read_exact(self, n: int) -> bytes:
        """Return exactly ``n`` bytes or raise ``asyncio.IncompleteReadError``."""
        end = self._pos + n
        chunk = self._data[self._pos:end]
        if len(chunk) < n:
            self._pos = len(self._data)
            raise asyncio.IncompleteReadError(chunk, n)
        self._pos = end
        return chunk

    async def read_u8(self) -> int:
        return (await self.read_exact(1))[0]


async def parse_addr(reader) -> str:
    """Read a type-prefixed address: 1 for IPv4, 2 or 3 for a domain, 4 for IPv6."""
    kind = await reader.read_u8()
    if kind == 1:
        return str(IPv4Address(await reader.read_exact(4)))
    if kind in (2, 3):
        length = await reader.read_u8()
        return (await reader.read_exact(length)).decode("utf-8", errors="replace")
    if kind == 4:
        return str(IPv6Address(await reader.read_exact(16)))
    raise AddressError("invalid address")


async def read_port(reader) -> int:
    """Read a big-endian 16-bit port."""
    return int.from_bytes(await reader.read_exact(2), "big")