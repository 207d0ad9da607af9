"""DNS over HTTPS in the RFC 8484 wire format."""

from __future__ import annotations

import aiohttp

DEFAULT_DOH_URL = "https://1.1.1.1/dns-query"
DNS_MESSAGE = "application/dns-message"


async def doh(req_wireformat: bytes, url: str = DEFAULT_DOH_URL) -> bytes:
    """POST a wire-format DNS query to ``url`` and return the response body."""
    headers = {"Content-Type": DNS_MESSAGE, "Accept": DNS_MESSAGE}
    async with aiohttp.ClientSession() as session:
        async with session.post(url, data=bytes(req_wireformat), headers=headers) as response:
            return await response.read()