"""
Local HTTP relay in front of an authenticated SOCKS proxy.

Chromium's ``--proxy-server`` cannot carry SOCKS credentials, so the browser
talks to an unauthenticated relay on localhost which forwards upstream.
"""
import logging
from typing import Optional

import pproxy

from .models import EgressDescriptor

logger = logging.getLogger(__name__)


def upstream_uri(egress: EgressDescriptor) -> str:
    """pproxy connection URI for the upstream proxy (credentials after ``#``)."""
    protocol = "socks5" if egress.protocol in ("socks5", "socks5h") else egress.protocol
    uri = f"{protocol}://{egress.host}:{egress.port}"
    if egress.has_credentials:
        uri += f"#{egress.username}:{egress.password}"
    return uri


class LocalRelay:
    """One relay per session; ``start`` returns the local proxy server URL."""

    def __init__(self, egress: EgressDescriptor, bind_host: str = "127.0.0.1"):
        self.egress = egress
        self.bind_host = bind_host
        self._handler = None
        self.server_url: Optional[str] = None

    async def start(self) -> str:
        server = pproxy.Server(f"http://{self.bind_host}:0")
        remote = pproxy.Connection(upstream_uri(self.egress))
        self._handler = await server.start_server({"rserver": [remote], "verbose": logger.debug})
        port = self._handler.sockets[0].getsockname()[1]
        self.server_url = f"http://{self.bind_host}:{port}"
        logger.info(f">>> Relay {self.server_url} -> {self.egress.describe()}")
        return self.server_url

    async def close(self) -> None:
        if self._handler is None:
            return
        self._handler.close()
        await self._handler.wait_closed()
        self._handler = None
        logger.debug(f"Relay closed: {self.server_url}")
