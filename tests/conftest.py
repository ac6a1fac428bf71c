"""
Shared fixtures for the Graph client test suite.

Provides an in-memory transport that records every request and replays
canned responses, so no test touches the network.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import pytest

from graph_client import ClientConfig, GraphClient
from graph_client.transport.base import BufferedResponse


@dataclass
class SentRequest:
    """Request captured by StubTransport, with streamed bodies drained to bytes."""
    method: str
    url: str
    headers: Dict[str, str]
    body: Optional[Union[str, bytes]] = None

    @property
    def query(self) -> str:
        return self.url.split("?", 1)[1] if "?" in self.url else ""

    @property
    def path(self) -> str:
        return self.url.split("?", 1)[0]


class TrackingResponse(BufferedResponse):
    """Buffered response that counts body reads."""

    def __init__(self, status: int, body: bytes = b""):
        super().__init__(status, body)
        self.reads = 0

    async def read(self) -> bytes:
        self.reads += 1
        return await super().read()


class StubTransport:
    """Transport double: records requests and replays queued responses in order."""

    def __init__(self):
        self.requests: List[SentRequest] = []
        self.responses: List[TrackingResponse] = []
        self.closed = False

    def queue(self, status: int = 200, body: Union[bytes, str, dict, list] = b"") -> TrackingResponse:
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        response = TrackingResponse(status, body)
        self.responses.append(response)
        return response

    async def send(self, method, url, headers, body=None):
        if body is not None and hasattr(body, "__anext__"):
            body = b"".join([chunk async for chunk in body])
        self.requests.append(SentRequest(method, url, dict(headers), body))
        if not self.responses:
            raise AssertionError(f"Unexpected {method} request to {url}")
        return self.responses.pop(0)

    async def close(self):
        self.closed = True

    @property
    def last(self) -> SentRequest:
        assert self.requests, "no request was sent"
        return self.requests[-1]


class ForbiddenTransport:
    """Transport that must never be invoked."""

    def __init__(self):
        self.calls = 0

    async def send(self, method, url, headers, body=None):
        self.calls += 1
        raise AssertionError(f"Transport must not be used, got {method} {url}")

    async def close(self):
        pass


@pytest.fixture
def transport():
    """Recording transport with an empty response queue."""
    return StubTransport()


@pytest.fixture
def forbidden_transport():
    """Transport that fails the test if any request is sent."""
    return ForbiddenTransport()


@pytest.fixture
def client(transport):
    """Client with an access token and no app secret."""
    return GraphClient(ClientConfig(access_token="user-token", transport=transport))


@pytest.fixture
def anonymous_client(transport):
    """Client without any credentials."""
    return GraphClient(ClientConfig(transport=transport))


@pytest.fixture
def signed_client(transport):
    """Client with both an access token and an app secret."""
    return GraphClient(ClientConfig(access_token="user-token", app_secret="app-secret", transport=transport))
