"""Network helpers for CLI commands."""

from __future__ import annotations

import errno
import socket


def is_port_in_use(host: str, port: int) -> bool:
    """Return True if host:port cannot be bound because another process holds it.

    Resolves the host the way the server will (IPv4 or IPv6) and sets
    SO_REUSEADDR like uvicorn does, so sockets in TIME_WAIT do not count.
    Unresolvable hosts return False and are left for the server to report.
    """
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE)
    except socket.gaierror:
        return False
    family, socktype, proto, _, address = infos[0]
    with socket.socket(family, socktype, proto) as s:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            s.bind(address)
            return False
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                return True
            raise
