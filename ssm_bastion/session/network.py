"""Small TCP helpers used around the port-forward session."""

from __future__ import annotations

import socket

from ..exceptions import ConfigError


def parse_remote(remote: str) -> tuple[str, str]:
    """Split ``host:port`` on the first colon."""
    host, sep, port = remote.partition(":")
    if not sep:
        raise ConfigError(f"Invalid remote '{remote}': use host:port format")
    return host, port


def parse_port(value: str) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid port number: {value!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"Port out of range: {port}")
    return port


def is_port_available(port: int) -> bool:
    """True when nothing is listening on ``port`` on any local interface."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind(("", port))
        except OSError:
            return False
    return True


def tcp_ping(host: str, port: int, timeout: float) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False
