"""
JSON encoding/decoding for Graph API payloads.

The request orchestrator only depends on the small `Decoder` protocol:
turn raw response bytes into a value of a requested type, and turn a value
into its canonical string form for request parameters and batch payloads.
`JsonDecoder` implements it on top of pydantic.
"""

from __future__ import annotations
import logging
from functools import lru_cache
from typing import Any, Callable, Protocol, Type, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_json

from .errors import InvalidArgumentError, ResponseDecodeError


logger = logging.getLogger(__name__)

T = TypeVar("T")

Reader = Callable[[bytes], Any]


class Decoder(Protocol):
    """Capability the client needs from a JSON mapper."""

    def reader_for(self, value_type: Any) -> Reader:
        """Return a callable turning raw bytes into a value of `value_type`."""
        ...

    def write(self, value: Any) -> str:
        """Serialize a value to its canonical string form."""
        ...


@lru_cache(maxsize=256)
def _adapter(value_type: Any) -> TypeAdapter:
    return TypeAdapter(value_type)


class JsonDecoder:
    """
    pydantic-backed decoder.

    `str` and `bytes` readers pass the body through as text or raw bytes;
    every other type is validated from JSON with a cached `TypeAdapter`.
    Model field naming (external snake_case keys) is declared on the models
    themselves via aliases.
    """

    def reader_for(self, value_type: Any) -> Reader:
        if value_type is bytes:
            return bytes
        if value_type is str:
            return _read_text

        adapter = _adapter(value_type)

        def read(raw: bytes) -> Any:
            try:
                return adapter.validate_json(raw)
            except ValidationError as e:
                raise ResponseDecodeError(
                    f"Could not decode response as {_type_name(value_type)}",
                    details={"errors": e.error_count()},
                    cause=e,
                )

        return read

    def write(self, value: Any) -> str:
        try:
            return to_json(value, by_alias=True, exclude_none=True).decode("utf-8")
        except Exception as e:
            raise InvalidArgumentError(f"Could not serialize {type(value).__name__}", cause=e)

    def read(self, raw: bytes, value_type: Type[T]) -> T:
        """Decode raw bytes straight into `value_type`."""
        return self.reader_for(value_type)(raw)


def _read_text(raw: bytes) -> str:
    return raw.decode("utf-8")


def _type_name(value_type: Any) -> str:
    return getattr(value_type, "__name__", None) or repr(value_type)


__all__ = ["Decoder", "JsonDecoder", "Reader"]
