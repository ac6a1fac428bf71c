"""
Transport layer for the Graph API client.

Provides the transport contract and aiohttp / requests implementations.
"""

from .base import Transport, TransportResponse, TransportError, BufferedResponse, RequestBody
from .aiohttp_transport import AiohttpTransport, AiohttpConfig
from .requests_transport import RequestsTransport

__all__ = [
    "Transport",
    "TransportResponse",
    "TransportError",
    "BufferedResponse",
    "RequestBody",
    "AiohttpTransport",
    "AiohttpConfig",
    "RequestsTransport",
]
