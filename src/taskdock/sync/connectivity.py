# src/taskdock/sync/connectivity.py

from __future__ import annotations

import asyncio
import contextlib
import logging
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)


class StaticConnectivity:
    """Connectivity flag set by the host application (the OS "online" bit)."""

    def __init__(self, online: bool = True) -> None:
        self.online = online

    async def is_online(self) -> bool:
        return self.online


class TcpConnectivity:
    """Online if a TCP connection to the remote host can be opened quickly."""

    def __init__(self, host: str, port: int, *, timeout: float = 2.0) -> None:
        self.host = host
        self.port = int(port)
        self.timeout = float(timeout)

    @classmethod
    def for_url(cls, url: str, *, timeout: float = 2.0) -> TcpConnectivity:
        parts = urlsplit(url)
        if not parts.hostname:
            raise ValueError(f"Cannot probe connectivity for URL without host: {url!r}")
        port = parts.port or (443 if parts.scheme == "https" else 80)
        return cls(parts.hostname, port, timeout=timeout)

    async def is_online(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.timeout,
            )
        except (OSError, asyncio.TimeoutError):
            logger.debug("Connectivity probe failed host=%s port=%s", self.host, self.port)
            return False
        writer.close()
        with contextlib.suppress(Exception):
            await writer.wait_closed()
        return True
