# Wire types for the Graph API client
# Field names match the external snake_case JSON keys of the Graph API.

from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar
from urllib.parse import parse_qs

from pydantic import BaseModel, Field, PrivateAttr

from .errors import IllegalStateError, ResponseDecodeError


T = TypeVar("T")


# =============================================================================
# Connections
# =============================================================================

class Cursors(BaseModel):
    """Opaque positions bracketing a page of a connection."""
    before: Optional[str] = None
    after: Optional[str] = None

    model_config = {"populate_by_name": True}


class Paging(BaseModel):
    """Paging metadata of a connection page."""
    cursors: Optional[Cursors] = None
    previous: Optional[str] = None
    next: Optional[str] = None

    model_config = {"populate_by_name": True}


class Page(BaseModel, Generic[T]):
    """
    One page of a Graph API connection.

    The URL the page was fetched from is not part of the wire payload; the
    client stamps it exactly once after decoding so that cursor-based
    continuation URLs can be derived from it.
    """
    data: List[T] = Field(default_factory=list)
    paging: Optional[Paging] = None

    model_config = {"populate_by_name": True}

    _url: Optional[str] = PrivateAttr(default=None)

    @property
    def url(self) -> Optional[str]:
        """URL this page was fetched from."""
        return self._url

    def stamp_url(self, url: str) -> None:
        """Record the originating URL. May only be called once."""
        if self._url is not None:
            raise IllegalStateError("Page URL has already been set")
        self._url = url

    @property
    def has_next(self) -> bool:
        from .pagination import PaginationResolver
        return PaginationResolver.next_url(self) is not None

    @property
    def has_previous(self) -> bool:
        from .pagination import PaginationResolver
        return PaginationResolver.previous_url(self) is not None


# =============================================================================
# Access tokens
# =============================================================================

class AccessToken(BaseModel):
    """Access token issued by one of the token-exchange operations."""
    access_token: str = Field(repr=False)
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), exclude=True)

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def expires_at(self) -> Optional[datetime]:
        """Absolute expiry, when the token response carried one."""
        if self.expires_in is None:
            return None
        return self.issued_at + timedelta(seconds=self.expires_in)

    @classmethod
    def from_query_string(cls, query_string: str) -> AccessToken:
        """
        Parse the legacy query-string token response.

        Accepts `access_token=...&expires=...` as well as `expires_in`.

        Raises:
            ResponseDecodeError: If no access token is present
        """
        values = parse_qs(query_string.strip(), keep_blank_values=False)
        token = values.get("access_token", [None])[0]
        if not token:
            raise ResponseDecodeError("Response contains no access token")

        expires = values.get("expires_in", values.get("expires", [None]))[0]
        try:
            expires_in = int(expires) if expires is not None else None
        except ValueError:
            expires_in = None

        token_type = values.get("token_type", [None])[0]
        return cls(access_token=token, token_type=token_type, expires_in=expires_in)


class DeviceCode(BaseModel):
    """Device-authorization code returned by the device login endpoint."""
    code: str
    user_code: str
    verification_uri: str
    expires_in: int
    interval: int = 5

    model_config = {"populate_by_name": True, "frozen": True}


class DebugTokenInfo(BaseModel):
    """Metadata about an access token, as reported by the debug endpoint."""
    app_id: Optional[str] = None
    application: Optional[str] = None
    type: Optional[str] = None
    user_id: Optional[str] = None
    is_valid: Optional[bool] = None
    issued_at: Optional[int] = None
    expires_at: Optional[int] = None
    data_access_expires_at: Optional[int] = None
    scopes: List[str] = Field(default_factory=list)
    granular_scopes: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[Dict[str, Any]] = None

    model_config = {"populate_by_name": True, "extra": "allow"}


class DebugTokenEnvelope(BaseModel):
    """Wire envelope of the debug endpoint."""
    data: DebugTokenInfo


class DeleteResponse(BaseModel):
    """Structured body of a delete call."""
    success: Optional[bool] = None
    result: Optional[str] = None

    model_config = {"populate_by_name": True}


# =============================================================================
# Batch
# =============================================================================

class BatchHeader(BaseModel):
    """Single HTTP header of a batch sub-request or sub-response."""
    name: str
    value: str


class BatchRequest(BaseModel):
    """One logical API call inside a batch."""
    method: str = "GET"
    relative_url: str
    body: Optional[str] = None
    name: Optional[str] = None
    depends_on: Optional[str] = None
    attached_files: Optional[str] = None
    omit_response_on_success: Optional[bool] = None
    headers: Optional[List[BatchHeader]] = None

    model_config = {"populate_by_name": True, "frozen": True}

    @classmethod
    def build(cls, relative_url: str, *parameters, method: str = "GET", **fields: Any) -> BatchRequest:
        """
        Build a sub-request, placing parameters where the method expects them.

        GET and DELETE parameters are appended to the relative URL; POST
        parameters become the form-encoded body.

        Args:
            relative_url: Path relative to the API version, e.g. "me/feed"
            *parameters: Parameter instances for the sub-request
            method: HTTP method of the sub-request
            **fields: Other BatchRequest fields (name, depends_on, ...)
        """
        from .codec import JsonDecoder
        from .params import encode_parameters, join_query

        method = method.upper()
        encoded = encode_parameters(parameters, JsonDecoder()) if parameters else ""
        if method == "POST":
            return cls(method=method, relative_url=relative_url, body=encoded or None, **fields)
        return cls(method=method, relative_url=join_query(relative_url, encoded), **fields)


class BatchResponse(BaseModel):
    """Result of one sub-request of a batch."""
    code: int
    headers: List[BatchHeader] = Field(default_factory=list)
    body: Optional[str] = None

    model_config = {"populate_by_name": True}

    @property
    def ok(self) -> bool:
        return 200 <= self.code < 300

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for header in self.headers:
            if header.name.lower() == lowered:
                return header.value
        return None


__all__ = [
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
]
