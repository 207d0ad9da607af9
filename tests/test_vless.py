import asyncio
from ipaddress import IPv4Address

import pytest

from beatrice.address import AddressError, BufferReader
from beatrice.vless import process_vless

pytestmark = pytest.mark.asyncio


class RecordingStream(BufferReader):
    def __init__(self, data):
        super().__init__(data)
        self.written = bytearray()
        self.calls = []

    async def write(self, data):
        self.written += data

    async def connect_pool(self, addr, port, is_tcp):
        self.calls.append((addr, port, is_tcp))


def vless_header(command, port, address, addons=b""):
    return (
        b"\x00"
        + bytes(range(16))
        + bytes([len(addons)])
        + addons
        + bytes([command])
        + port.to_bytes(2, "big")
        + address
    )


DOMAIN = b"\x02\x0bexample.com"


async def test_tcp_request_writes_header_and_connects():
    target = IPv4Address("192.0.2.10")
    stream = RecordingStream(vless_header(1, 443, b"\x01" + target.packed) + b"payload")
    await process_vless(stream)
    assert bytes(stream.written) == b"\x00\x00"
    assert stream.calls == [(str(target), 443, True)]
    assert await stream.read_exact(7) == b"payload"


@pytest.mark.parametrize(
    "command, addons, port, expected_written, is_tcp",
    [
        (2, b"", 53, b"", False),
        (1, b"\x0a\x02xy", 80, b"\x00\x00", True),
    ],
)
async def test_domain_requests(command, addons, port, expected_written, is_tcp):
    stream = RecordingStream(vless_header(command, port, DOMAIN, addons=addons))
    await process_vless(stream)
    assert bytes(stream.written) == expected_written
    assert stream.calls == [("example.com", port, is_tcp)]


@pytest.mark.parametrize(
    "data, error",
    [
        (vless_header(1, 80, b"\x09\x00\x00\x00\x00"), AddressError),
        (b"\x00" + bytes(10), asyncio.IncompleteReadError),
    ],
)
async def test_bad_request_raises(data, error):
    stream = RecordingStream(data)
    with pytest.raises(error):
        await process_vless(stream)
    assert stream.calls == []