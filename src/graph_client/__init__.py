"""
Graph API Client

Asynchronous client for the Facebook Graph API: typed object and connection
fetches, publishing with binary attachments, batch calls, and the access
token exchange flows.
"""

from .client import GraphClient, EndpointCall
from .config import ClientConfig, DEFAULT_API_VERSION, DEFAULT_DEVICE_TOKEN_ERRORS
from .codec import Decoder, JsonDecoder
from .endpoints import EndpointResolver, GraphEndpoints, app_secret_proof
from .classifier import ErrorClassifier, FailedResponse, SuccessfulResponse
from .errors import *
from .multipart import Attachment, MultipartBody, MultipartEncoder
from .oauth import DeviceTokenErrorMapping, ScopeBuilder, TokenExchange
from .pagination import PaginationResolver
from .params import Parameter
from .types import *

# Transports
from .transport import AiohttpConfig, AiohttpTransport, RequestsTransport, Transport, TransportError

# Recovery
from .recovery import DevicePollingPolicy, PollingAttemptsExceeded, poll_device_access_token

__version__ = "1.0.0"
__all__ = [
    # Client
    "GraphClient",
    "EndpointCall",
    "ClientConfig",
    "DEFAULT_API_VERSION",
    "DEFAULT_DEVICE_TOKEN_ERRORS",

    # Protocol layer
    "Parameter",
    "EndpointResolver",
    "GraphEndpoints",
    "app_secret_proof",
    "ErrorClassifier",
    "SuccessfulResponse",
    "FailedResponse",
    "PaginationResolver",
    "Attachment",
    "MultipartBody",
    "MultipartEncoder",
    "Decoder",
    "JsonDecoder",

    # Token exchange
    "TokenExchange",
    "ScopeBuilder",
    "DeviceTokenErrorMapping",
    "DevicePollingPolicy",
    "PollingAttemptsExceeded",
    "poll_device_access_token",

    # Errors
    "GraphClientError",
    "InvalidArgumentError",
    "IllegalStateError",
    "ResponseDecodeError",
    "RemoteError",
    "NetworkError",
    "ResponseStatusError",
    "GraphError",
    "OAuthError",
    "GraphPermissionError",
    "RateLimitError",
    "QueryParseError",
    "DeviceTokenError",
    "DeviceTokenPendingError",
    "DeviceTokenSlowdownError",
    "DeviceTokenExpiredError",
    "DeviceTokenDeniedError",
    "GraphErrorParser",
    "ErrorHandler",

    # Types
    "Cursors",
    "Paging",
    "Page",
    "AccessToken",
    "DeviceCode",
    "DebugTokenInfo",
    "DebugTokenEnvelope",
    "DeleteResponse",
    "BatchHeader",
    "BatchRequest",
    "BatchResponse",

    # Transports
    "Transport",
    "TransportError",
    "AiohttpTransport",
    "AiohttpConfig",
    "RequestsTransport",
]
