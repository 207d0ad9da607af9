"""The Shadowsocks request header."""

from .address import parse_addr, read_port


async def process_shadowsocks(stream) -> None:
    """Read a Shadowsocks target from ``stream`` and relay it over TCP."""
    addr = await parse_addr(stream)
    port = await read_port(stream)
    # UDP cannot be told apart in this framing, so every request goes over TCP.
    await stream.connect_pool(addr, port, True)