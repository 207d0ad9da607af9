"""The VLESS request header."""

from .address import parse_addr, read_port

_RESPONSE_HEADER = b"\x00\x00"


async def process_vless(stream) -> None:
    """Read a VLESS request from ``stream`` and relay it to its target."""
    await stream.read_u8()  # version
    await stream.read_exact(16)  # user id, not checked
    addons_length = await stream.read_u8()
    await stream.read_exact(addons_length)
    is_tcp = await stream.read_u8() == 1
    port = await read_port(stream)
    addr = await parse_addr(stream)
    if is_tcp:
        await stream.write(_RESPONSE_HEADER)
    await stream.connect_pool(addr, port, is_tcp)