"""WebSocket tunnel server speaking VLESS, Trojan, Shadowsocks and VMess."""

__version__ = "0.1.0"