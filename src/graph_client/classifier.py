"""
Response error classification.

Wraps each transport response in one of two variants. A successful
response exposes its body unchanged. A failed response only reads its body
when the body is requested, maps it through the error parser at that point,
and raises the resulting error. Successful calls therefore never pay for
error-body parsing.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Callable, Optional, Union

from .errors import GraphErrorParser, NetworkError, RemoteError
from .transport.base import TransportResponse


logger = logging.getLogger(__name__)

CHECKED_ERROR_STATUSES = frozenset({
    HTTPStatus.BAD_REQUEST,
    HTTPStatus.UNAUTHORIZED,
    HTTPStatus.NOT_FOUND,
    HTTPStatus.INTERNAL_SERVER_ERROR,
    HTTPStatus.FORBIDDEN,
    HTTPStatus.NOT_MODIFIED,
})

ErrorDecoder = Callable[[bytes], RemoteError]


@dataclass(frozen=True)
class SuccessfulResponse:
    """Response with an OK status."""
    response: TransportResponse

    @property
    def status(self) -> int:
        return self.response.status

    async def body(self) -> bytes:
        return await self.response.read()


@dataclass(frozen=True)
class FailedResponse:
    """
    Response with a non-OK status; reading its body raises the mapped error.

    Without an error decoder the body is never read and the failure is a
    status-only NetworkError.
    """
    response: TransportResponse
    error_decoder: Optional[ErrorDecoder] = None

    @property
    def status(self) -> int:
        return self.response.status

    async def body(self) -> bytes:
        if self.error_decoder is None:
            raise NetworkError(self.status)
        raw = await self.response.read()
        raise self.error_decoder(raw)


ClassifiedResponse = Union[SuccessfulResponse, FailedResponse]


class ErrorClassifier:
    """
    Turns protocol-level failures into typed errors.

    Statuses in the checked set have their body inspected for a structured
    error; any other non-OK status fails with a status-only NetworkError.
    """

    def __init__(self, error_parser: Optional[GraphErrorParser] = None):
        self.error_parser = error_parser or GraphErrorParser()

    def classify(self, response: TransportResponse) -> ClassifiedResponse:
        status = response.status
        if status == HTTPStatus.OK:
            return SuccessfulResponse(response)

        if status not in CHECKED_ERROR_STATUSES:
            return FailedResponse(response)

        return FailedResponse(response, lambda raw: self._decode_error(raw, status))

    def _decode_error(self, raw: bytes, status: int) -> RemoteError:
        body = raw.decode("utf-8", errors="replace")
        error = self.error_parser.parse(body, status)
        if error is None:
            logger.debug(f"No structured error in HTTP {status} response")
            return NetworkError(status)
        return error


__all__ = [
    "CHECKED_ERROR_STATUSES",
    "ClassifiedResponse",
    "ErrorClassifier",
    "FailedResponse",
    "SuccessfulResponse",
]
