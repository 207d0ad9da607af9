# beatrice

An asyncio WebSocket tunnel server built on aiohttp. A client opens a
WebSocket to the server and sends a proxy handshake in its first binary
frames. The server reads up to the first 62 bytes, decides which protocol
the handshake belongs to, and relays the rest of the connection over TCP
to the requested destination.

Handshakes are told apart like this:

- **VLESS**: first byte `0`
- **Shadowsocks**: first byte `1` or `3` (a plain address header, always relayed over TCP)
- **Trojan**: bytes 56 and 57 are `\r\n`
- **VMess**: anything else; the AEAD header is decrypted with a key derived
  from the server's UUID, and the encrypted response header is sent back

VLESS and Trojan user ids are read but not checked.

For a TCP request the server first relays to the destination directly and,
once that relay has ended or failed, relays again to a fallback proxy
address. For a UDP request one datagram is read and posted to the
DNS-over-HTTPS resolver at `https://1.1.1.1/dns-query`; if that request
succeeds, the datagram is written back to the client.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Running the server

```
beatrice --uuid 00000000-0000-0000-0000-000000000000
```

Options:

- `--uuid`: the user id VMess clients authenticate with. Defaults to the
  `UUID` environment variable; one of the two is required. A value that
  does not parse as a UUID becomes the nil UUID.
- `--host`: address to listen on (default `0.0.0.0`).
- `--port`: port to listen on (default `8080`).

`beatrice --help` lists them.

### Routes

- `/link` returns JSON with a `description` and a `link`. The link is a
  `vmess://` URL whose payload is URL-safe base64 of a JSON settings object
  naming the request's host, the server's UUID, address `162.159.16.149`,
  port `80` and WebSocket transport.
- `/<proxyip>` accepts a WebSocket upgrade and starts the tunnel. If the
  path segment has the form `<address>-<port>`, for example
  `/proxy.example.com-443`, that address and port become the fallback for
  outbound TCP connections. Otherwise the fallback is the request's own
  host on port 80.

A request to the tunnel route without `Upgrade: websocket` is answered with
the page fetched from `https://example.com`, passing on its status and
content type.

## Library use

The protocol pieces can be used on their own. The readers are coroutines:

```python
import asyncio

from beatrice.address import BufferReader, parse_addr, read_port
from beatrice.app import make_link, parse_proxyip, parse_uuid
from beatrice.kdf import kdf, vmess_cmd_key

# VMess key derivation
cmd_key = vmess_cmd_key(parse_uuid("00000000-0000-0000-0000-000000000000"))
derived = kdf(cmd_key, [b"AES Auth ID Encryption"])  # 32 bytes

# Address header shared by VLESS, Trojan, Shadowsocks and VMess
async def read_target():
    reader = BufferReader(bytes([1, 127, 0, 0, 1, 0x01, 0xBB]))
    host = await parse_addr(reader)  # "127.0.0.1"
    port = await read_port(reader)   # 443
    return host, port

print(asyncio.run(read_target()))
print(parse_proxyip("proxy.example.com-443"))  # ("proxy.example.com", 443)
```

Other entry points:

- `beatrice.config.Config`: the user id, host and fallback proxy of one
  tunnel; `with_proxy(addr, port)` returns a copy with another fallback.
- `beatrice.conn.ProxyStream(config, ws)`: wraps a WebSocket as a byte
  stream; `process()` detects the protocol and runs its handler.
- `beatrice.vmess.aead_decrypt`, `response_header` and `process_vmess`, and
  `process_vless`, `process_trojan`, `process_shadowsocks` in their modules.
- `beatrice.dns.doh(query, url)`: posts a wire-format DNS query and
  returns the response body.
- `beatrice.app.create_app(uuid)` builds the aiohttp application, so it can
  be served from your own code instead of the `beatrice` command.

## What it does not do

- It serves plain HTTP only; TLS has to be provided in front of it.
- Shadowsocks traffic is not decrypted; only an unencrypted address header
  is understood.
- UDP is not relayed to its destination; only the DNS-over-HTTPS exchange
  described above takes place.