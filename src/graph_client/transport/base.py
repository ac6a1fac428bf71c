"""
Transport contract.

The client never issues HTTP itself. It hands a fully built request to a
`Transport` and receives a `TransportResponse` whose body is read lazily.
"""

from __future__ import annotations
from typing import AsyncIterator, Mapping, Optional, Protocol, Union


RequestBody = Union[str, bytes, AsyncIterator[bytes], None]


class TransportError(Exception):
    """The transport could not complete the exchange."""
    pass


class TransportResponse(Protocol):
    """Completed HTTP exchange whose body has not necessarily been read."""

    @property
    def status(self) -> int:
        ...

    async def read(self) -> bytes:
        """Read the full response body."""
        ...

    async def release(self) -> None:
        """Return the underlying connection; safe to call more than once."""
        ...


class Transport(Protocol):
    """Executes HTTP requests."""

    async def send(self, method: str, url: str, headers: Mapping[str, str],
                   body: RequestBody = None) -> TransportResponse:
        ...

    async def close(self) -> None:
        ...


class BufferedResponse:
    """In-memory response, used by transports that read the body eagerly."""

    def __init__(self, status: int, body: bytes = b"", headers: Optional[Mapping[str, str]] = None):
        self._status = status
        self._body = body
        self.headers = dict(headers or {})
        self.released = False

    @property
    def status(self) -> int:
        return self._status

    async def read(self) -> bytes:
        return self._body

    async def release(self) -> None:
        self.released = True

    def __repr__(self) -> str:
        return f"BufferedResponse(status={self._status}, bytes={len(self._body)})"
