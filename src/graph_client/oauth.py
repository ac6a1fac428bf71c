"""
Access token exchange.

Implements the OAuth-style token operations on top of the client's request
primitives: app, user and extended tokens, session key conversion, token
debugging, and the device authorization flow.

The device flow polls exactly once per `obtain_device_access_token` call.
While the user has not finished authorizing, the call fails with
`DeviceTokenPendingError`; callers wait the device code's interval and call
again (see `recovery.polling` for a ready-made loop).
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Awaitable, Dict, List, Mapping, Optional, Type

from .errors import DeviceTokenError, IllegalStateError, OAuthError, RemoteError, ResponseDecodeError
from .params import Parameter, verify_parameter_presence
from .types import AccessToken, DebugTokenEnvelope, DebugTokenInfo, DeviceCode

if TYPE_CHECKING:
    from .client import GraphClient


logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "oauth/access_token"
EXCHANGE_SESSIONS_ENDPOINT = "oauth/exchange_sessions"
DEVICE_LOGIN_ENDPOINT = "device/login"
DEVICE_LOGIN_STATUS_ENDPOINT = "device/login_status"
DEBUG_TOKEN_ENDPOINT = "debug_token"

PUBLIC_PROFILE = "public_profile"


class ScopeBuilder:
    """Comma-separated list of permissions requested from the user."""

    def __init__(self, *permissions: str, without_public_profile: bool = False):
        self._permissions: List[str] = [] if without_public_profile else [PUBLIC_PROFILE]
        for permission in permissions:
            self.add(permission)

    def add(self, permission: str) -> ScopeBuilder:
        verify_parameter_presence("permission", permission)
        if permission not in self._permissions:
            self._permissions.append(permission)
        return self

    @property
    def permissions(self) -> List[str]:
        return list(self._permissions)

    def __str__(self) -> str:
        return ",".join(self._permissions)

    def __repr__(self) -> str:
        return f"ScopeBuilder({str(self)!r})"


class DeviceTokenErrorMapping:
    """
    Maps OAuth errors of the device login status endpoint to device-flow
    errors, keyed by remote error subcode.
    """

    def __init__(self, mapping: Optional[Mapping[int, Type[DeviceTokenError]]] = None):
        self._mapping: Dict[int, Type[DeviceTokenError]] = dict(mapping or {})

    def register(self, subcode: int, error_class: Type[DeviceTokenError]) -> None:
        self._mapping[subcode] = error_class

    def map(self, error: OAuthError) -> RemoteError:
        """Return the device-flow error for `error`, or `error` itself when unmapped."""
        error_class = self._mapping.get(error.error_subcode)
        if error_class is None:
            return error
        return error_class.from_error(error)

    def __contains__(self, subcode: int) -> bool:
        return subcode in self._mapping


class TokenExchange:
    """
    Token acquisition flows.

    Token responses are decoded as a JSON token document first; if that
    fails the body is parsed as a legacy query-string token.
    """

    def __init__(self, client: GraphClient,
                 device_token_errors: Optional[Mapping[int, Type[DeviceTokenError]]] = None):
        self._client = client
        self.device_token_errors = DeviceTokenErrorMapping(device_token_errors)

    def obtain_app_access_token(self, app_id: str, app_secret: str) -> Awaitable[AccessToken]:
        """Obtain an app access token with the client credentials grant."""
        verify_parameter_presence("app_id", app_id)
        verify_parameter_presence("app_secret", app_secret)

        return self._token_request(
            Parameter("grant_type", "client_credentials"),
            Parameter("client_id", app_id),
            Parameter("client_secret", app_secret),
        )

    def obtain_user_access_token(self, app_id: str, app_secret: str, redirect_uri: str,
                                 verification_code: str) -> Awaitable[AccessToken]:
        """Exchange an authorization code for a user access token."""
        verify_parameter_presence("app_id", app_id)
        verify_parameter_presence("app_secret", app_secret)
        verify_parameter_presence("verification_code", verification_code)

        return self._token_request(
            Parameter("client_id", app_id),
            Parameter("client_secret", app_secret),
            Parameter("code", verification_code),
            Parameter("redirect_uri", redirect_uri or ""),
        )

    def obtain_extended_access_token(self, app_id: str, app_secret: str,
                                     access_token: Optional[str] = None) -> Awaitable[AccessToken]:
        """
        Exchange a short-lived token for a long-lived one.

        Uses the client's configured access token when `access_token` is omitted.

        Raises:
            IllegalStateError: If no token is given and none was configured
        """
        if access_token is None:
            access_token = self._client.access_token
            if access_token is None:
                raise IllegalStateError(
                    f"You cannot call this method because you did not construct this instance of "
                    f"{type(self._client).__name__} with an access token."
                )

        verify_parameter_presence("app_id", app_id)
        verify_parameter_presence("app_secret", app_secret)
        verify_parameter_presence("access_token", access_token)

        return self._token_request(
            Parameter("client_id", app_id),
            Parameter("client_secret", app_secret),
            Parameter("grant_type", "fb_exchange_token"),
            Parameter("fb_exchange_token", access_token),
        )

    def convert_session_keys_to_access_tokens(self, app_id: str, secret_key: str,
                                              *session_keys: str) -> Awaitable[List[AccessToken]]:
        """Convert legacy session keys to access tokens, one token per key."""
        verify_parameter_presence("app_id", app_id)
        verify_parameter_presence("secret_key", secret_key)

        if not session_keys:
            return _resolved([])

        return self._client._request(
            "POST",
            EXCHANGE_SESSIONS_ENDPOINT,
            (
                Parameter("client_id", app_id),
                Parameter("client_secret", secret_key),
                Parameter("sessions", ",".join(session_keys)),
            ),
            self._client.decoder.reader_for(List[AccessToken]),
        )

    def fetch_device_code(self, scope: Optional[ScopeBuilder] = None) -> Awaitable[DeviceCode]:
        """
        Start the device authorization flow.

        Raises:
            IllegalStateError: If the client has no configured access token
        """
        self._require_access_token()
        scope = scope if scope is not None else ScopeBuilder()

        return self._client._request(
            "POST",
            DEVICE_LOGIN_ENDPOINT,
            (Parameter("type", "device_code"), Parameter("scope", str(scope))),
            self._client.decoder.reader_for(DeviceCode),
        )

    def obtain_device_access_token(self, code: str) -> Awaitable[AccessToken]:
        """
        Poll the device login status once.

        Resolves to the access token once the user has authorized. Otherwise
        fails with a `DeviceTokenError` subtype: pending and slow-down are
        retryable, expiry and denial are terminal. OAuth errors that match no
        configured subcode surface unchanged.

        Raises:
            IllegalStateError: If the client has no configured access token
        """
        verify_parameter_presence("code", code)
        self._require_access_token()

        pending = self._client._request(
            "POST",
            DEVICE_LOGIN_STATUS_ENDPOINT,
            (Parameter("type", "device_token"), Parameter("code", code)),
            bytes,
        )
        return self._device_token(pending)

    def debug_token(self, input_token: str) -> Awaitable[DebugTokenInfo]:
        """Inspect an access token."""
        verify_parameter_presence("input_token", input_token)

        pending = self._client._request(
            "GET",
            DEBUG_TOKEN_ENDPOINT,
            (Parameter("input_token", input_token),),
            self._client.decoder.reader_for(DebugTokenEnvelope),
        )
        return self._unwrap_debug_info(pending)

    def _token_request(self, *parameters: Parameter) -> Awaitable[AccessToken]:
        pending = self._client._request("GET", TOKEN_ENDPOINT, parameters, bytes)
        return self._access_token(pending)

    async def _access_token(self, pending: Awaitable[bytes]) -> AccessToken:
        return self.access_token_from_response(await pending)

    async def _device_token(self, pending: Awaitable[bytes]) -> AccessToken:
        try:
            raw = await pending
        except OAuthError as e:
            mapped = self.device_token_errors.map(e)
            if mapped is e:
                raise
            logger.debug(f"Device login status: {type(mapped).__name__}")
            raise mapped from e
        return self.access_token_from_response(raw)

    @staticmethod
    async def _unwrap_debug_info(pending: Awaitable[DebugTokenEnvelope]) -> DebugTokenInfo:
        return (await pending).data

    def access_token_from_response(self, raw: bytes) -> AccessToken:
        """
        Decode a token response.

        Tries the JSON token document first and falls back to the legacy
        query-string encoding.

        Raises:
            ResponseDecodeError: If neither encoding yields a token
        """
        try:
            return self._client.decoder.reader_for(AccessToken)(raw)
        except ResponseDecodeError:
            logger.debug("Token response is not a JSON token document, parsing it as a query string")
        return AccessToken.from_query_string(raw.decode("utf-8", errors="replace"))

    def _require_access_token(self) -> None:
        if self._client.access_token is None:
            raise IllegalStateError("access token is required to use the device authorization flow")


async def _resolved(value):
    return value


__all__ = ["TokenExchange", "ScopeBuilder", "DeviceTokenErrorMapping"]
