"""Per-request settings shared by the protocol handlers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from uuid import UUID

DEFAULT_PROXY_PORT = 80


@dataclass(frozen=True)
class Config:
    """The user id, the public host, and the fallback proxy to try after a direct connect."""

    uuid: UUID
    host: str
    proxy_addr: str
    proxy_port: int = DEFAULT_PROXY_PORT

    def __post_init__(self) -> None:
        _check_port(self.proxy_port)

    def with_proxy(self, addr: str, port: int) -> "Config":
        """Return a copy that falls back to ``addr:port`` instead."""
        _check_port(port)
        return replace(self, proxy_addr=addr, proxy_port=port)


def _check_port(port: int) -> None:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port out of range: {port}")