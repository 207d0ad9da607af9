"""The VMess AEAD request header and its response."""

from __future__ import annotations

import hashlib
import logging
from typing import Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .address import BufferReader, parse_addr, read_port
from .kdf import (
    KDFSALT_CONST_AEAD_RESP_HEADER_IV,
    KDFSALT_CONST_AEAD_RESP_HEADER_KEY,
    KDFSALT_CONST_AEAD_RESP_HEADER_LEN_IV,
    KDFSALT_CONST_AEAD_RESP_HEADER_LEN_KEY,
    KDFSALT_CONST_VMESS_HEADER_PAYLOAD_AEAD_IV,
    KDFSALT_CONST_VMESS_HEADER_PAYLOAD_AEAD_KEY,
    KDFSALT_CONST_VMESS_HEADER_PAYLOAD_LENGTH_AEAD_IV,
    KDFSALT_CONST_VMESS_HEADER_PAYLOAD_LENGTH_AEAD_KEY,
    kdf,
    vmess_cmd_key,
)

log = logging.getLogger(__name__)

_AUTH_ID_LENGTH = 16
_SEALED_LENGTH_SIZE = 18
_NONCE_LENGTH = 8
_TAG_LENGTH = 16
_RESPONSE_HEADER_LENGTH = 4


class VmessError(ValueError):
    """The VMess header could not be decrypted or is not one this server accepts."""


def _open(key: bytes, nonce: bytes, sealed: bytes, aad: bytes) -> bytes:
    try:
        return AESGCM(key).decrypt(nonce, sealed, aad)
    except InvalidTag as exc:
        raise VmessError("aead decryption failed") from exc


async def aead_decrypt(stream) -> bytes:
    """Read the sealed command section from ``stream`` and return it in the clear."""
    cmd_key = vmess_cmd_key(stream.config.uuid)

    auth_id = await stream.read_exact(_AUTH_ID_LENGTH)
    sealed_length = await stream.read_exact(_SEALED_LENGTH_SIZE)
    nonce = await stream.read_exact(_NONCE_LENGTH)

    def derive(salt: bytes, size: int) -> bytes:
        return kdf(cmd_key, [salt, auth_id, nonce])[:size]

    length_bytes = _open(
        derive(KDFSALT_CONST_VMESS_HEADER_PAYLOAD_LENGTH_AEAD_KEY, 16),
        derive(KDFSALT_CONST_VMESS_HEADER_PAYLOAD_LENGTH_AEAD_IV, 12),
        sealed_length,
        auth_id,
    )
    header_length = int.from_bytes(length_bytes[:2], "big")

    sealed_cmd = await stream.read_exact(header_length + _TAG_LENGTH)
    return _open(
        derive(KDFSALT_CONST_VMESS_HEADER_PAYLOAD_AEAD_KEY, 16),
        derive(KDFSALT_CONST_VMESS_HEADER_PAYLOAD_AEAD_IV, 12),
        sealed_cmd,
        auth_id,
    )


def response_header(body_key: bytes, body_iv: bytes, option: int) -> Tuple[bytes, bytes]:
    """Return the sealed length block and the sealed response header block."""
    key = hashlib.sha256(bytes(body_key)).digest()[:16]
    iv = hashlib.sha256(bytes(body_iv)).digest()[:16]

    length_key = kdf(key, [KDFSALT_CONST_AEAD_RESP_HEADER_LEN_KEY])[:16]
    length_iv = kdf(iv, [KDFSALT_CONST_AEAD_RESP_HEADER_LEN_IV])[:12]
    length_block = AESGCM(length_key).encrypt(
        length_iv, _RESPONSE_HEADER_LENGTH.to_bytes(2, "big"), None
    )

    payload_key = kdf(key, [KDFSALT_CONST_AEAD_RESP_HEADER_KEY])[:16]
    payload_iv = kdf(iv, [KDFSALT_CONST_AEAD_RESP_HEADER_IV])[:12]
    header_block = AESGCM(payload_key).encrypt(payload_iv, bytes([option, 0, 0, 0]), None)

    return length_block, header_block


async def process_vmess(stream) -> None:
    """Read a VMess request from ``stream``, answer it and relay it to its target."""
    reader = BufferReader(await aead_decrypt(stream))

    version = await reader.read_u8()
    if version != 1:
        raise VmessError("invalid version")

    body_iv = await reader.read_exact(16)
    body_key = await reader.read_exact(16)
    options = await reader.read_exact(4)
    is_tcp = await reader.read_u8() == 1
    port = await read_port(reader)
    addr = await parse_addr(reader)

    log.info("connecting to upstream %s:%s [is_tcp=%s]", addr, port, is_tcp)

    for block in response_header(body_key, body_iv, options[0]):
        await stream.write(block)

    await stream.connect_pool(addr, port, is_tcp)