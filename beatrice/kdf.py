"""The nested-HMAC key derivation used by the VMess AEAD header."""

from __future__ import annotations

import hashlib
from typing import Iterable, Protocol, Union
from uuid import UUID

KDF_ROOT_KEY = b"VMess AEAD KDF"
CMD_KEY_SALT = b"c48619fe-8f02-49e0-b9e9-edf763e17e21"

KDFSALT_CONST_VMESS_HEADER_PAYLOAD_LENGTH_AEAD_KEY = b"VMess Header AEAD Key_Length"
KDFSALT_CONST_VMESS_HEADER_PAYLOAD_LENGTH_AEAD_IV = b"VMess Header AEAD Nonce_Length"
KDFSALT_CONST_VMESS_HEADER_PAYLOAD_AEAD_KEY = b"VMess Header AEAD Key"
KDFSALT_CONST_VMESS_HEADER_PAYLOAD_AEAD_IV = b"VMess Header AEAD Nonce"
KDFSALT_CONST_AEAD_RESP_HEADER_LEN_KEY = b"AEAD Resp Header Len Key"
KDFSALT_CONST_AEAD_RESP_HEADER_LEN_IV = b"AEAD Resp Header Len IV"
KDFSALT_CONST_AEAD_RESP_HEADER_KEY = b"AEAD Resp Header Key"
KDFSALT_CONST_AEAD_RESP_HEADER_IV = b"AEAD Resp Header IV"

_BLOCK_SIZE = 64


class _Hasher(Protocol):
    def copy(self) -> "_Hasher": ...

    def update(self, data: bytes) -> None: ...

    def digest(self) -> bytes: ...


class _Nested:
    """An HMAC whose underlying hash is another hasher, possibly another HMAC."""

    def __init__(self, key: bytes, hasher: _Hasher) -> None:
        if len(key) > _BLOCK_SIZE:
            raise ValueError(f"kdf key longer than {_BLOCK_SIZE} bytes")
        padded = key.ljust(_BLOCK_SIZE, b"\x00")
        self._opad = bytes(b ^ 0x5C for b in padded)
        self._outer = hasher
        self._inner = hasher.copy()
        self._inner.update(bytes(b ^ 0x36 for b in padded))

    def copy(self) -> "_Nested":
        clone = object.__new__(_Nested)
        clone._opad = self._opad
        clone._outer = self._outer.copy()
        clone._inner = self._inner.copy()
        return clone

    def update(self, data: bytes) -> None:
        self._inner.update(data)

    def digest(self) -> bytes:
        inner_result = self._inner.digest()
        outer = self._outer.copy()
        outer.update(self._opad)
        outer.update(inner_result)
        return outer.digest()


def kdf(key: bytes, path: Iterable[bytes]) -> bytes:
    """Derive 32 bytes from ``key`` through the chain of salts in ``path``."""
    current: _Hasher = _Nested(KDF_ROOT_KEY, hashlib.sha256())
    for salt in path:
        current = _Nested(bytes(salt), current)
    current.update(bytes(key))
    return current.digest()


def vmess_cmd_key(uuid: Union[UUID, str]) -> bytes:
    """Return the 16-byte command key belonging to a user id."""
    if not isinstance(uuid, UUID):
        uuid = UUID(str(uuid))
    return hashlib.md5(uuid.bytes + CMD_KEY_SALT).digest()