"""
aiohttp transport.

Default asynchronous transport. Holds one lazily created `ClientSession`
per transport instance; connection pooling, TLS and DNS stay with aiohttp.
"""

from __future__ import annotations
import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

import aiohttp

from .base import RequestBody, TransportError


logger = logging.getLogger(__name__)


@dataclass
class AiohttpConfig:
    """Configuration for the aiohttp transport."""
    max_connections: int = 100
    max_connections_per_host: int = 30
    connection_timeout: float = 10.0
    request_timeout: float = 60.0
    keep_alive_timeout: float = 30.0
    enable_compression: bool = True

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.max_connections <= 0:
            raise ValueError("max_connections must be positive")
        if self.max_connections_per_host <= 0:
            raise ValueError("max_connections_per_host must be positive")
        if self.connection_timeout <= 0 or self.request_timeout <= 0:
            raise ValueError("timeouts must be positive")


class AiohttpResponse:
    """TransportResponse over an `aiohttp.ClientResponse`."""

    def __init__(self, response: aiohttp.ClientResponse):
        self._response = response

    @property
    def status(self) -> int:
        return self._response.status

    async def read(self) -> bytes:
        try:
            return await self._response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Failed reading response body: {type(e).__name__}") from e

    async def release(self) -> None:
        result = self._response.release()
        if inspect.isawaitable(result):
            await result


class AiohttpTransport:
    """
    Transport backed by an `aiohttp.ClientSession`.

    Features:
    - Lazily created session shared by all calls of one client
    - Streams async-iterable request bodies without buffering
    - Optional externally managed session
    """

    def __init__(self, config: Optional[AiohttpConfig] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the transport.

        Args:
            config: Connection and timeout settings
            session: Existing session to use; it is not closed by this transport
        """
        self.config = config or AiohttpConfig()
        self._session = session
        self._owns_session = session is None
        self.closed = False

    def _get_session(self) -> aiohttp.ClientSession:
        if self.closed:
            raise TransportError("Transport has been closed")

        if self._session is None:
            connector = aiohttp.TCPConnector(
                limit=self.config.max_connections,
                limit_per_host=self.config.max_connections_per_host,
                keepalive_timeout=self.config.keep_alive_timeout,
                enable_cleanup_closed=True,
            )
            timeout = aiohttp.ClientTimeout(
                total=self.config.request_timeout,
                connect=self.config.connection_timeout,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                auto_decompress=self.config.enable_compression,
                trust_env=True,
            )
            logger.debug("Created aiohttp session")

        return self._session

    async def send(self, method: str, url: str, headers: Mapping[str, str],
                   body: RequestBody = None) -> AiohttpResponse:
        session = self._get_session()
        try:
            response = await session.request(method, url, headers=dict(headers), data=body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"{method} request failed: {type(e).__name__}")
            raise TransportError(f"{method} request failed: {type(e).__name__}") from e
        return AiohttpResponse(response)

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self.closed:
            return
        self.closed = True
        if self._session is not None and self._owns_session:
            await self._session.close()
            logger.debug("Closed aiohttp session")
        self._session = None

    async def __aenter__(self) -> AiohttpTransport:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


__all__ = ["AiohttpTransport", "AiohttpConfig", "AiohttpResponse"]
