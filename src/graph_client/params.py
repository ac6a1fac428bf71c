"""
Request parameter handling.

Pure helpers shared by every call: parameter legality checks, endpoint path
normalization, and serialization of parameters into a URL-encoded string.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Tuple
from urllib.parse import quote_plus

from .codec import Decoder
from .errors import InvalidArgumentError


ACCESS_TOKEN_PARAM_NAME = "access_token"
METHOD_PARAM_NAME = "method"
FORMAT_PARAM_NAME = "format"
IDS_PARAM_NAME = "ids"
APP_SECRET_PROOF_PARAM_NAME = "appsecret_proof"

RESERVED_PARAM_NAMES = frozenset({ACCESS_TOKEN_PARAM_NAME, METHOD_PARAM_NAME, FORMAT_PARAM_NAME})


@dataclass(frozen=True)
class Parameter:
    """Name/value pair sent along with an API call."""
    name: str
    value: Any

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidArgumentError("Parameter name cannot be blank")
        if self.value is None:
            raise InvalidArgumentError(f"Parameter '{self.name}' value cannot be None")

    @classmethod
    def of(cls, name: str, value: Any) -> Parameter:
        return cls(name, value)


def verify_parameter_presence(name: str, value: Any) -> None:
    """Fail with InvalidArgumentError when a required argument is missing or blank."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidArgumentError(f"'{name}' cannot be blank")


def verify_parameter_legality(parameters: Iterable[Parameter],
                              reserved: Iterable[str] = RESERVED_PARAM_NAMES) -> None:
    """
    Reject parameters the client sets itself.

    Raises:
        InvalidArgumentError: If any parameter uses a reserved name
    """
    reserved = frozenset(reserved)
    for parameter in parameters:
        if parameter.name in reserved:
            raise InvalidArgumentError(
                f"Parameter '{parameter.name}' is reserved for client use - you cannot specify it yourself."
            )


def with_additional_parameter(parameter: Parameter,
                              parameters: Sequence[Parameter]) -> Tuple[Parameter, ...]:
    """
    Append a parameter, refusing duplicates.

    Raises:
        InvalidArgumentError: If a parameter with the same name is already present
    """
    for existing in parameters:
        if existing.name == parameter.name:
            raise InvalidArgumentError(f"Parameter '{parameter.name}' is already present")
    return tuple(parameters) + (parameter,)


def normalize_path(path: str) -> str:
    """Make an endpoint path start with a single separator."""
    path = path or ""
    return "/" + path.lstrip("/")


def encode_parameters(parameters: Iterable[Parameter], decoder: Decoder) -> str:
    """
    Serialize parameters in the given order as `name=value` pairs joined by `&`.

    String values are used as-is; other values are first written to their
    canonical string form by the decoder. Names and values are URL-encoded.
    """
    pairs = []
    for parameter in parameters:
        value = parameter.value if isinstance(parameter.value, str) else decoder.write(parameter.value)
        pairs.append(f"{quote_plus(parameter.name)}={quote_plus(value)}")
    return "&".join(pairs)


def to_parameter_string(parameters: Sequence[Parameter], decoder: Decoder,
                        access_token: Optional[str] = None, json_format: bool = True) -> str:
    """
    Build the full parameter string of a call.

    The caller's parameters come first, followed by the access token (when
    configured) and the JSON format marker.
    """
    verify_parameter_legality(parameters)

    if access_token:
        parameters = with_additional_parameter(Parameter(ACCESS_TOKEN_PARAM_NAME, access_token), parameters)
    if json_format:
        parameters = with_additional_parameter(Parameter(FORMAT_PARAM_NAME, "json"), parameters)

    return encode_parameters(parameters, decoder)


def join_query(url: str, query: str) -> str:
    """Append an encoded query string to a URL that may already carry one."""
    if not query:
        return url
    if "?" not in url:
        return f"{url}?{query}"
    if url.endswith("?") or url.endswith("&"):
        return url + query
    return f"{url}&{query}"


__all__ = [
    "Parameter",
    "ACCESS_TOKEN_PARAM_NAME",
    "APP_SECRET_PROOF_PARAM_NAME",
    "FORMAT_PARAM_NAME",
    "IDS_PARAM_NAME",
    "METHOD_PARAM_NAME",
    "RESERVED_PARAM_NAMES",
    "verify_parameter_presence",
    "verify_parameter_legality",
    "with_additional_parameter",
    "normalize_path",
    "encode_parameters",
    "to_parameter_string",
    "join_query",
]
