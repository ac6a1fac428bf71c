"""
Graph API Error Model

This module provides the error handling framework for the Graph API client:
the exception taxonomy raised by every operation, and the parser that turns
a structured remote error body into the matching exception.
"""

from __future__ import annotations
import json
import logging
from typing import Optional, Dict, Any, Type


logger = logging.getLogger(__name__)


class GraphClientError(Exception):
    """
    Base class for all Graph client errors.

    Provides structured error information so callers can decide whether to
    retry, abort, or prompt a human.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):
        """
        Initialize a Graph client error.

        Args:
            message: Error message
            details: Additional error details
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"[{type(self).__name__}] {self.message}"]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result: Dict[str, Any] = {
            "type": type(self).__name__,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class InvalidArgumentError(GraphClientError, ValueError):
    """Caller misuse detected before any network call."""
    pass


class IllegalStateError(GraphClientError, RuntimeError):
    """The operation requires client state that was not configured."""
    pass


class ResponseDecodeError(GraphClientError):
    """A response body could not be decoded into the requested type."""
    pass


class RemoteError(GraphClientError):
    """
    Failure reported by the remote API.

    Carries the HTTP status and, where the body contained a structured
    error, the remote error code, subcode and messages.
    """

    def __init__(self, message: str, status: Optional[int] = None,
                 error_code: Optional[int] = None, error_subcode: Optional[int] = None,
                 error_type: Optional[str] = None, user_title: Optional[str] = None,
                 user_message: Optional[str] = None, is_transient: bool = False,
                 fbtrace_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):
        super().__init__(message, details, cause)
        self.status = status
        self.error_code = error_code
        self.error_subcode = error_subcode
        self.error_type = error_type
        self.user_title = user_title
        self.user_message = user_message
        self.is_transient = is_transient
        self.fbtrace_id = fbtrace_id

    def __str__(self) -> str:
        parts = [f"[{type(self).__name__}] {self.message}"]
        if self.status is not None:
            parts.append(f"HTTP status: {self.status}")
        if self.error_code is not None:
            code = f"code: {self.error_code}"
            if self.error_subcode is not None:
                code += f", subcode: {self.error_subcode}"
            parts.append(code)
        if self.fbtrace_id:
            parts.append(f"trace: {self.fbtrace_id}")
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        for key in ("status", "error_code", "error_subcode", "error_type",
                    "user_title", "user_message", "fbtrace_id"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        result["is_transient"] = self.is_transient
        return result

    @classmethod
    def from_error(cls, error: RemoteError, message: Optional[str] = None) -> RemoteError:
        """Re-type an existing remote error, keeping all of its remote detail."""
        return cls(
            message or error.message,
            status=error.status,
            error_code=error.error_code,
            error_subcode=error.error_subcode,
            error_type=error.error_type,
            user_title=error.user_title,
            user_message=error.user_message,
            is_transient=error.is_transient,
            fbtrace_id=error.fbtrace_id,
            details=error.details,
            cause=error,
        )


class NetworkError(RemoteError):
    """Non-success HTTP status with no parseable structured error."""

    def __init__(self, status: int, message: Optional[str] = None, cause: Optional[Exception] = None):
        super().__init__(message or f"Graph API returned HTTP status {status}", status=status, cause=cause)


class ResponseStatusError(RemoteError):
    """Legacy error body of the form {"error_code": ..., "error_msg": ...}."""
    pass


class GraphError(RemoteError):
    """Structured {"error": {...}} body that matched no more specific type."""
    pass


class OAuthError(GraphError):
    """Authorization or access token problem."""
    pass


class GraphPermissionError(OAuthError):
    """The token lacks a permission the call requires."""
    pass


class RateLimitError(GraphError):
    """Application, user or page request limit reached."""
    pass


class QueryParseError(GraphError):
    """The remote API could not parse the request."""
    pass


class DeviceTokenError(OAuthError):
    """Outcome of a device-flow polling call that did not issue a token."""

    retryable = False


class DeviceTokenPendingError(DeviceTokenError):
    """The user has not completed authorization yet; poll again after the interval."""

    retryable = True


class DeviceTokenSlowdownError(DeviceTokenError):
    """Polling too frequently; poll again after a longer interval."""

    retryable = True


class DeviceTokenExpiredError(DeviceTokenError):
    """The device code expired before the user authorized it."""
    pass


class DeviceTokenDeniedError(DeviceTokenError):
    """The user declined the authorization request."""
    pass


OAUTH_ERROR_TYPES = frozenset({"OAuthException", "OAuthAccessTokenException"})
OAUTH_ERROR_CODES = frozenset({102, 190})
RATE_LIMIT_ERROR_CODES = frozenset({4, 17, 32, 613})


class GraphErrorParser:
    """
    Inspects an error response body for a structured error payload.

    Recognizes the current {"error": {...}} envelope and the legacy
    {"error_code": ..., "error_msg": ...} form. Anything else is treated
    as unstructured, leaving the caller to fall back to a status-only error.
    """

    def parse(self, body: str, status: int) -> Optional[RemoteError]:
        """
        Build the typed error described by a response body.

        Args:
            body: Response body decoded as UTF-8 text
            status: HTTP status of the response

        Returns:
            The matching error, or None when the body carries no structured error
        """
        text = (body or "").strip()
        if not text.startswith("{"):
            return None

        try:
            payload = json.loads(text)
        except ValueError:
            logger.debug("Error body is not valid JSON, falling back to status-only error")
            return None

        if not isinstance(payload, dict):
            return None

        error = payload.get("error")
        if isinstance(error, dict):
            return self._graph_error(error, status, payload)

        if "error_code" in payload:
            return ResponseStatusError(
                str(payload.get("error_msg") or "Unknown error"),
                status=status,
                error_code=_as_int(payload.get("error_code")),
                details=payload,
            )

        return None

    def _graph_error(self, error: Dict[str, Any], status: int, payload: Dict[str, Any]) -> RemoteError:
        error_code = _as_int(error.get("code"))
        error_type = error.get("type")
        error_class = self.error_class_for(error_code, error_type)

        return error_class(
            str(error.get("message") or "Unknown error"),
            status=status,
            error_code=error_code,
            error_subcode=_as_int(error.get("error_subcode")),
            error_type=error_type,
            user_title=error.get("error_user_title"),
            user_message=error.get("error_user_msg"),
            is_transient=bool(error.get("is_transient", False)),
            fbtrace_id=error.get("fbtrace_id"),
            details=payload,
        )

    def error_class_for(self, error_code: Optional[int], error_type: Optional[str]) -> Type[RemoteError]:
        """
        Select the exception type for a remote error code and type name.

        Subclasses override this to recognize additional codes.
        """
        if error_code in RATE_LIMIT_ERROR_CODES:
            return RateLimitError
        if error_code is not None and (error_code == 10 or 200 <= error_code <= 299):
            return GraphPermissionError
        if error_type in OAUTH_ERROR_TYPES or error_code in OAUTH_ERROR_CODES:
            return OAuthError
        if error_type == "QueryParseException":
            return QueryParseError
        return GraphError


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ErrorHandler:
    """
    Utility class for categorizing errors.
    """

    @staticmethod
    def is_retryable(error: Exception) -> bool:
        """
        Check if an error is worth retrying.

        Args:
            error: Exception to check

        Returns:
            True if the error should be retried
        """
        if isinstance(error, DeviceTokenError):
            return error.retryable
        if isinstance(error, RateLimitError):
            return True
        if isinstance(error, NetworkError):
            return error.status is not None and error.status >= 500
        if isinstance(error, RemoteError):
            return error.is_transient
        return False


__all__ = [
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
]
