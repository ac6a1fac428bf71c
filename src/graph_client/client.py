"""
Graph API Client

Request orchestration for a versioned graph-style HTTP API: object and
connection fetches, publishing with optional binary attachments, deletes,
batch calls, and the token-exchange operations.

Every public operation validates its arguments synchronously and returns an
awaitable that has not started yet; nothing is sent until the caller awaits
it. Misuse therefore raises immediately, while remote failures surface when
the awaitable is awaited.
"""

from __future__ import annotations
import dataclasses
import json
import logging
from dataclasses import dataclass, field
from typing import (
    Any, AsyncIterator, Awaitable, Dict, List, Optional, Sequence, Type, TypeVar,
)

from pydantic import ValidationError

from .classifier import ErrorClassifier
from .codec import Reader
from .config import ClientConfig
from .endpoints import EndpointResolver
from .errors import InvalidArgumentError
from .multipart import Attachment, MultipartEncoder
from .oauth import ScopeBuilder, TokenExchange
from .pagination import PaginationResolver
from .params import (
    IDS_PARAM_NAME,
    Parameter,
    join_query,
    to_parameter_string,
    verify_parameter_presence,
    with_additional_parameter,
)
from .transport.aiohttp_transport import AiohttpConfig, AiohttpTransport
from .transport.base import RequestBody, Transport
from .types import (
    AccessToken,
    BatchRequest,
    BatchResponse,
    DebugTokenInfo,
    DeleteResponse,
    DeviceCode,
    Page,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
DELETE_SUCCESS_PHRASE = "Successfully deleted"
BATCH_PARAM_NAME = "batch"


@dataclass(frozen=True)
class EndpointCall:
    """Fully resolved request, built before anything is sent."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: RequestBody = field(default=None, repr=False)

    @property
    def path(self) -> str:
        """URL without its query string, safe to log."""
        return self.url.split("?", 1)[0]


class GraphClient:
    """
    Asynchronous Graph API client.

    Provides typed methods for:
    - Fetching single objects, several objects by ID, and paged connections
    - Publishing, with or without binary attachments
    - Deleting objects
    - Batch execution
    - Access token exchange and the device authorization flow

    Example:
        ```python
        async with GraphClient(access_token="...", app_secret="...") as client:
            me = await client.fetch_object("me", User, Parameter.of("fields", "id,name"))

            page = await client.fetch_connection("me/feed", Post)
            while page is not None:
                for post in page.data:
                    print(post.id)
                page = await client.fetch_next_page(page, Post)
        ```
    """

    def __init__(self, config: Optional[ClientConfig] = None, **overrides: Any):
        """
        Initialize the client.

        Args:
            config: Client configuration; built from `overrides` when omitted
            **overrides: ClientConfig fields overriding `config`
        """
        if config is None:
            config = ClientConfig(**overrides)
        elif overrides:
            config = dataclasses.replace(config, **overrides)

        self.config = config
        self._owns_transport = config.transport is None
        self._transport: Transport = config.transport or AiohttpTransport(
            AiohttpConfig(request_timeout=config.timeout)
        )
        self._decoder = config.decoder
        self._resolver = EndpointResolver(
            config.api_version, config.access_token, config.app_secret, config.endpoints
        )
        self._classifier = ErrorClassifier(config.error_parser)
        self._multipart = MultipartEncoder()
        self.oauth = TokenExchange(self, config.device_token_errors)

    @property
    def access_token(self) -> Optional[str]:
        return self.config.access_token

    @property
    def api_version(self) -> Optional[str]:
        return self.config.api_version

    @property
    def decoder(self):
        return self._decoder

    @property
    def endpoint_resolver(self) -> EndpointResolver:
        return self._resolver

    async def close(self) -> None:
        """Close the transport if it was created by this client."""
        if self._owns_transport:
            await self._transport.close()

    async def __aenter__(self) -> GraphClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Objects
    # =========================================================================

    def fetch_object(self, object_id: str, object_type: Type[T], *parameters: Parameter) -> Awaitable[T]:
        """
        Fetch a single object, e.g. "me".

        Args:
            object_id: ID or path of the object
            object_type: Type the response is decoded into
            *parameters: URL parameters of the call

        Returns:
            Awaitable resolving to the decoded object
        """
        verify_parameter_presence("object_id", object_id)
        verify_parameter_presence("object_type", object_type)
        return self._request("GET", object_id, parameters, self._decoder.reader_for(object_type))

    def fetch_objects(self, ids: Sequence[str], object_type: Type[T], *parameters: Parameter) -> Awaitable[T]:
        """
        Fetch several objects in one call.

        `object_type` is a container for the response keyed by ID, such as
        `Dict[str, User]` or a model with one field per ID.

        Raises:
            InvalidArgumentError: If `ids` is empty or holds a blank ID, or
                the caller supplied the `ids` parameter
        """
        verify_parameter_presence("object_type", object_type)
        if ids is None or isinstance(ids, str):
            raise InvalidArgumentError("ids must be a sequence of object IDs")
        if len(ids) == 0:
            raise InvalidArgumentError("The list of IDs cannot be empty.")
        for object_id in ids:
            if not isinstance(object_id, str) or not object_id.strip():
                raise InvalidArgumentError("The list of IDs cannot contain blank strings.")
        for parameter in parameters:
            if parameter.name == IDS_PARAM_NAME:
                raise InvalidArgumentError(
                    f"You cannot specify the '{IDS_PARAM_NAME}' URL parameter yourself - "
                    f"it is populated from the list of IDs passed to this method."
                )

        parameters = with_additional_parameter(
            Parameter(IDS_PARAM_NAME, self._decoder.write(list(ids))), parameters
        )
        return self._request("GET", "", parameters, self._decoder.reader_for(object_type))

    def delete_object(self, object_id: str, *parameters: Parameter) -> Awaitable[bool]:
        """
        Delete an object.

        Returns:
            Awaitable resolving to True when the remote API reports success
        """
        verify_parameter_presence("object_id", object_id)
        call = self._prepare("DELETE", object_id, parameters)
        return self._delete(call)

    async def _delete(self, call: EndpointCall) -> bool:
        raw = await self._execute(call, self._decoder.reader_for(bytes))
        return self._interpret_delete(raw.decode("utf-8", errors="replace"))

    def _interpret_delete(self, text: str) -> bool:
        try:
            payload = json.loads(text)
        except ValueError:
            payload = None
            logger.debug("Delete response is not JSON, interpreting it as text")

        if isinstance(payload, dict):
            try:
                response = DeleteResponse.model_validate(payload)
            except ValidationError:
                logger.debug("Unexpected delete response shape, interpreting it as text")
            else:
                if response.success is not None:
                    return response.success
                if response.result is not None:
                    return DELETE_SUCCESS_PHRASE in response.result

        text = text.strip()
        return text == "true" or text == DELETE_SUCCESS_PHRASE

    # =========================================================================
    # Connections
    # =========================================================================

    def fetch_connection(self, connection: str, item_type: Type[T],
                         *parameters: Parameter) -> Awaitable[Page[T]]:
        """
        Fetch the first page of a connection, e.g. "me/feed".

        The returned page remembers its URL so that cursor-based
        continuation URLs can be derived from it.
        """
        verify_parameter_presence("connection", connection)
        verify_parameter_presence("item_type", item_type)
        call = self._prepare("GET", connection, parameters)
        return self._fetch_page(call, item_type)

    def fetch_connection_page(self, page_url: str, item_type: Type[T]) -> Awaitable[Page[T]]:
        """
        Fetch a connection page by its absolute URL, usually obtained from
        `PaginationResolver.next_url` or `previous_url`.
        """
        verify_parameter_presence("page_url", page_url)
        verify_parameter_presence("item_type", item_type)
        call = EndpointCall("GET", self._resolver.sign_url(page_url))
        return self._fetch_page(call, item_type)

    def fetch_next_page(self, page: Page[T], item_type: Type[T]) -> Awaitable[Optional[Page[T]]]:
        """Fetch the page after `page`; resolves to None on the last page."""
        return self._fetch_adjacent(PaginationResolver.next_url(page), item_type)

    def fetch_previous_page(self, page: Page[T], item_type: Type[T]) -> Awaitable[Optional[Page[T]]]:
        """Fetch the page before `page`; resolves to None on the first page."""
        return self._fetch_adjacent(PaginationResolver.previous_url(page), item_type)

    async def iter_connection(self, connection: str, item_type: Type[T],
                              *parameters: Parameter) -> AsyncIterator[T]:
        """Iterate over every item of a connection, following next pages."""
        page: Optional[Page[T]] = await self.fetch_connection(connection, item_type, *parameters)
        while page is not None:
            for item in page.data:
                yield item
            if not page.data:
                break
            page = await self.fetch_next_page(page, item_type)

    async def _fetch_adjacent(self, url: Optional[str], item_type: Type[T]) -> Optional[Page[T]]:
        if url is None:
            return None
        return await self.fetch_connection_page(url, item_type)

    async def _fetch_page(self, call: EndpointCall, item_type: Type[T]) -> Page[T]:
        page = await self._execute(call, self._decoder.reader_for(Page[item_type]))
        page.stamp_url(call.url)
        return page

    # =========================================================================
    # Publishing
    # =========================================================================

    def publish(self, connection: str, object_type: Type[T], *parameters: Parameter,
                attachments: Optional[Sequence[Attachment]] = None) -> Awaitable[T]:
        """
        Publish to a connection, e.g. "me/feed" or "me/photos".

        Without attachments the parameters form the request body. With
        attachments the body is a multipart stream of the attachments and
        the parameters move to the URL query.
        """
        verify_parameter_presence("connection", connection)
        verify_parameter_presence("object_type", object_type)
        return self._request("POST", connection, parameters, self._decoder.reader_for(object_type),
                             attachments=attachments)

    # =========================================================================
    # Batch
    # =========================================================================

    def execute_batch(self, batch_requests: Sequence[BatchRequest],
                      attachments: Optional[Sequence[Attachment]] = None
                      ) -> Awaitable[List[Optional[BatchResponse]]]:
        """
        Execute several calls in one request.

        Returns:
            Awaitable resolving to one response per request, in input order;
            entries are None for requests sent with omit_response_on_success
        """
        if not batch_requests:
            raise InvalidArgumentError("You must specify at least one batch request.")

        parameter = Parameter(BATCH_PARAM_NAME, self._decoder.write(list(batch_requests)))
        return self._request("POST", "", (parameter,),
                             self._decoder.reader_for(List[Optional[BatchResponse]]),
                             attachments=attachments)

    # =========================================================================
    # Token exchange
    # =========================================================================

    def obtain_app_access_token(self, app_id: str, app_secret: str) -> Awaitable[AccessToken]:
        return self.oauth.obtain_app_access_token(app_id, app_secret)

    def obtain_user_access_token(self, app_id: str, app_secret: str, redirect_uri: str,
                                 verification_code: str) -> Awaitable[AccessToken]:
        return self.oauth.obtain_user_access_token(app_id, app_secret, redirect_uri, verification_code)

    def obtain_extended_access_token(self, app_id: str, app_secret: str,
                                     access_token: Optional[str] = None) -> Awaitable[AccessToken]:
        return self.oauth.obtain_extended_access_token(app_id, app_secret, access_token)

    def convert_session_keys_to_access_tokens(self, app_id: str, secret_key: str,
                                              *session_keys: str) -> Awaitable[List[AccessToken]]:
        return self.oauth.convert_session_keys_to_access_tokens(app_id, secret_key, *session_keys)

    def fetch_device_code(self, scope: Optional[ScopeBuilder] = None) -> Awaitable[DeviceCode]:
        return self.oauth.fetch_device_code(scope)

    def obtain_device_access_token(self, code: str) -> Awaitable[AccessToken]:
        return self.oauth.obtain_device_access_token(code)

    def debug_token(self, input_token: str) -> Awaitable[DebugTokenInfo]:
        return self.oauth.debug_token(input_token)

    # =========================================================================
    # Request plumbing
    # =========================================================================

    def _request(self, method: str, path: str, parameters: Sequence[Parameter], reader: Reader,
                 attachments: Optional[Sequence[Attachment]] = None) -> Awaitable[Any]:
        call = self._prepare(method, path, parameters, attachments)
        return self._execute(call, reader)

    def _prepare(self, method: str, path: str, parameters: Sequence[Parameter],
                 attachments: Optional[Sequence[Attachment]] = None) -> EndpointCall:
        """Validate parameters and build the request; no I/O happens here."""
        parameter_string = to_parameter_string(parameters, self._decoder, self.access_token)

        if method != "POST":
            url = join_query(self._resolver.resolve(path), parameter_string)
            return EndpointCall(method, url)

        if attachments:
            multipart = self._multipart.encode(attachments)
            url = join_query(self._resolver.resolve(path, has_attachment=True), parameter_string)
            return EndpointCall(method, url, dict(multipart.headers), multipart.stream)

        return EndpointCall(
            method,
            self._resolver.resolve(path),
            {"Content-Type": FORM_CONTENT_TYPE},
            parameter_string,
        )

    async def _execute(self, call: EndpointCall, reader: Reader) -> Any:
        logger.debug(f"{call.method} {call.path}")
        try:
            response = await self._transport.send(call.method, call.url, call.headers, call.body)
            try:
                raw = await self._classifier.classify(response).body()
            finally:
                await response.release()
        finally:
            # A transport writing from its own task may still be inside the
            # stream; cancelling that task finalizes it instead.
            aclose = getattr(call.body, "aclose", None)
            if aclose is not None and not getattr(call.body, "ag_running", False):
                await aclose()
        return reader(raw)


__all__ = ["GraphClient", "EndpointCall"]
