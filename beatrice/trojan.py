"""The Trojan request header."""

from .address import parse_addr, read_port

_PASSWORD_HASH_LENGTH = 56


async def process_trojan(stream) -> None:
    """Read a Trojan request from ``stream`` and relay it to its target."""
    await stream.read_exact(_PASSWORD_HASH_LENGTH)  # user hash, not checked
    await stream.read_u16()  # CRLF
    is_tcp = await stream.read_u8() == 1
    addr = await parse_addr(stream)
    port = await read_port(stream)
    await stream.read_u16()  # CRLF
    await stream.connect_pool(addr, port, is_tcp)