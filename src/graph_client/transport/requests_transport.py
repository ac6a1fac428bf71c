"""
requests transport.

Runs a blocking `requests.Session` in a worker thread so callers that
already manage a requests session can reuse it with the async client.
"""

from __future__ import annotations
import asyncio
import logging
from typing import AsyncIterator, Iterator, Mapping, Optional

import requests

from .base import BufferedResponse, RequestBody, TransportError


logger = logging.getLogger(__name__)


_END_OF_STREAM = object()


async def _next_chunk(stream: AsyncIterator[bytes]):
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return _END_OF_STREAM


def _bridge(stream: AsyncIterator[bytes], loop: asyncio.AbstractEventLoop) -> Iterator[bytes]:
    """Pull an async byte stream from a worker thread, one chunk at a time."""
    while True:
        chunk = asyncio.run_coroutine_threadsafe(_next_chunk(stream), loop).result()
        if chunk is _END_OF_STREAM:
            return
        yield chunk


class RequestsTransport:
    """
    Transport backed by `requests.Session`.

    Async-iterable bodies are streamed with chunked transfer encoding,
    each chunk being pulled from the event loop as requests asks for it.
    """

    def __init__(self, timeout: float = 60.0, session: Optional[requests.Session] = None,
                 verify_ssl: bool = True):
        """
        Initialize the transport.

        Args:
            timeout: Request timeout in seconds
            session: Optional requests.Session for connection pooling
            verify_ssl: Whether to verify TLS certificates
        """
        self._timeout = timeout
        self._session = session or requests.Session()
        self._owns_session = session is None
        self._verify_ssl = verify_ssl

    async def send(self, method: str, url: str, headers: Mapping[str, str],
                   body: RequestBody = None) -> BufferedResponse:
        data = body
        if body is not None and hasattr(body, "__anext__"):
            data = _bridge(body, asyncio.get_running_loop())

        try:
            response = await asyncio.to_thread(
                self._session.request,
                method,
                url,
                headers=dict(headers),
                data=data,
                timeout=self._timeout,
                verify=self._verify_ssl,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"{method} request failed: {type(e).__name__}")
            raise TransportError(f"{method} request failed: {type(e).__name__}") from e

        return BufferedResponse(response.status_code, response.content, response.headers)

    async def close(self) -> None:
        """Close the HTTP session if owned by this transport."""
        if self._owns_session:
            self._session.close()

    async def __aenter__(self) -> RequestsTransport:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


__all__ = ["RequestsTransport"]
