import asyncio
from ipaddress import IPv4Address

import pytest

from beatrice.address import AddressError, BufferReader
from beatrice.shadowsocks import process_shadowsocks

pytestmark = pytest.mark.asyncio


class CallLog(BufferReader):
    def __init__(self, data):
        super().__init__(data)
        self.calls = []

    async def connect_pool(self, addr, port, is_tcp):
        self.calls.append((addr, port, is_tcp))


@pytest.mark.parametrize(
    "address, expected, port",
    [
        (b"\x03\x0bexample.com", "example.com", 8080),
        (b"\x01" + IPv4Address("198.51.100.4").packed, "198.51.100.4", 22),
    ],
)
async def test_target_is_tcp(address, expected, port):
    stream = CallLog(address + port.to_bytes(2, "big") + b"data")
    await process_shadowsocks(stream)
    assert stream.calls == [(expected, port, True)]
    assert await stream.read_exact(4) == b"data"


@pytest.mark.parametrize(
    "data, error",
    [
        (b"\x05\x00\x00", AddressError),
        (b"\x03\x0bexample.com\x01", asyncio.IncompleteReadError),
    ],
)
async def test_bad_request_raises(data, error):
    stream = CallLog(data)
    with pytest.raises(error):
        await process_shadowsocks(stream)
    assert stream.calls == []