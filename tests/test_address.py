import asyncio
from ipaddress import IPv4Address, IPv6Address

import pytest

from beatrice.address import AddressError, BufferReader, parse_addr, read_port

pytestmark = pytest.mark.asyncio


async def test_read_exact_returns_slices_in_order():
    reader = BufferReader(b"abcdef")
    assert await reader.read_exact(2) == b"ab"
    assert await reader.read_exact(3) == b"cde"
    assert await reader.read_u8() == ord("f")


async def test_read_exact_past_end_raises():
    reader = BufferReader(b"ab")
    with pytest.raises(asyncio.IncompleteReadError) as info:
        await reader.read_exact(3)
    assert info.value.partial == b"ab"


async def test_read_u8_on_empty_raises():
    with pytest.raises(EOFError):
        await BufferReader(b"").read_u8()


@pytest.mark.parametrize(
    "kind, address",
    [(1, IPv4Address("192.0.2.7")), (4, IPv6Address("2001:db8::1"))],
)
async def test_parse_ip_address(kind, address):
    reader = BufferReader(bytes([kind]) + address.packed)
    assert await parse_addr(reader) == str(address)


@pytest.mark.parametrize(
    "encoded, expected",
    [
        (b"\x02\x0bexample.com", "example.com"),
        (b"\x03\x0bexample.com", "example.com"),
        (b"\x02\x03a\xffb", "a\ufffdb"),
    ],
)
async def test_parse_domain(encoded, expected):
    assert await parse_addr(BufferReader(encoded)) == expected


@pytest.mark.parametrize("kind", [0, 5, 255])
async def test_unknown_address_type(kind):
    with pytest.raises(AddressError):
        await parse_addr(BufferReader(bytes([kind]) + b"\x00" * 16))


async def test_truncated_address_raises():
    with pytest.raises(asyncio.IncompleteReadError):
        await parse_addr(BufferReader(b"\x01\x7f\x00"))


async def test_read_port_round_trip():
    assert await read_port(BufferReader((443).to_bytes(2, "big"))) == 443


async def test_parse_addr_leaves_rest_unread():
    reader = BufferReader(b"\x03\x0bexample.comtail")
    await parse_addr(reader)
    assert await reader.read_exact(4) == b"tail"