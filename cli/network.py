"""Network state checks used by the background sync daemon."""

from __future__ import annotations

import logging
import socket
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from cli.scheduler import NetworkState

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 3.0


def server_reachable(server_url: str, timeout: float = CONNECT_TIMEOUT_SECONDS) -> bool:
    """True if a TCP connection to the server's host and port succeeds."""
    parts = urlsplit(server_url)
    if not parts.hostname:
        return False
    port = parts.port or (443 if parts.scheme == "https" else 80)
    try:
        with socket.create_connection((parts.hostname, port), timeout=timeout):
            return True
    except OSError as exc:
        logger.debug("Server %s:%d unreachable: %s", parts.hostname, port, exc)
        return False


def make_network_check(server_url: str, *, metered: bool = False) -> Callable[[], NetworkState]:
    """State check that reports the server as offline when it cannot be reached.

    Desktop platforms expose no portable "metered" signal, so the caller
    declares it.
    """

    def current_state() -> NetworkState:
        return NetworkState(connected=server_reachable(server_url), unmetered=not metered)

    return current_state
