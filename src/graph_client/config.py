"""
Client configuration.
"""

from __future__ import annotations
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Type

from .codec import Decoder, JsonDecoder
from .endpoints import GraphEndpoints
from .errors import (
    DeviceTokenError,
    DeviceTokenExpiredError,
    DeviceTokenPendingError,
    DeviceTokenSlowdownError,
    GraphErrorParser,
    InvalidArgumentError,
)
from .transport.base import Transport


DEFAULT_API_VERSION = "v19.0"

API_VERSION_PATTERN = re.compile(r"^v\d+\.\d+$")

# Subcodes published for the device login status endpoint.
DEFAULT_DEVICE_TOKEN_ERRORS: Dict[int, Type[DeviceTokenError]] = {
    1349174: DeviceTokenPendingError,
    1349172: DeviceTokenSlowdownError,
    1349152: DeviceTokenExpiredError,
}


def _trim_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class ClientConfig:
    """Configuration for the Graph API client."""

    access_token: Optional[str] = field(default=None, repr=False)
    app_secret: Optional[str] = field(default=None, repr=False)
    api_version: Optional[str] = DEFAULT_API_VERSION
    transport: Optional[Transport] = None
    decoder: Decoder = field(default_factory=JsonDecoder)
    error_parser: GraphErrorParser = field(default_factory=GraphErrorParser)
    device_token_errors: Mapping[int, Type[DeviceTokenError]] = field(
        default_factory=lambda: dict(DEFAULT_DEVICE_TOKEN_ERRORS)
    )
    endpoints: GraphEndpoints = field(default_factory=GraphEndpoints)
    timeout: float = 60.0
    debug: bool = False

    def __post_init__(self):
        """Normalize credentials and validate settings."""
        self.access_token = _trim_to_none(self.access_token)
        self.app_secret = _trim_to_none(self.app_secret)
        self.api_version = _trim_to_none(self.api_version)

        if self.api_version is not None and not API_VERSION_PATTERN.match(self.api_version):
            raise InvalidArgumentError(
                f"Invalid API version '{self.api_version}', expected the form 'v19.0'"
            )
        if self.timeout <= 0:
            raise InvalidArgumentError("timeout must be positive")
        for subcode, error_class in self.device_token_errors.items():
            if not (isinstance(error_class, type) and issubclass(error_class, DeviceTokenError)):
                raise InvalidArgumentError(
                    f"Device token mapping for subcode {subcode} must be a DeviceTokenError subclass"
                )

        if self.debug:
            logging.getLogger("graph_client").setLevel(logging.DEBUG)

    @classmethod
    def from_env(cls, prefix: str = "GRAPH_", **overrides: Any) -> ClientConfig:
        """
        Build a configuration from environment variables.

        Reads `<prefix>ACCESS_TOKEN`, `<prefix>APP_SECRET`, `<prefix>API_VERSION`,
        `<prefix>TIMEOUT` and `<prefix>DEBUG`; keyword overrides take precedence.
        """
        values: Dict[str, Any] = {}
        env = os.environ

        if f"{prefix}ACCESS_TOKEN" in env:
            values["access_token"] = env[f"{prefix}ACCESS_TOKEN"]
        if f"{prefix}APP_SECRET" in env:
            values["app_secret"] = env[f"{prefix}APP_SECRET"]
        if f"{prefix}API_VERSION" in env:
            values["api_version"] = env[f"{prefix}API_VERSION"]
        if f"{prefix}TIMEOUT" in env:
            try:
                values["timeout"] = float(env[f"{prefix}TIMEOUT"])
            except ValueError:
                raise InvalidArgumentError(f"{prefix}TIMEOUT must be a number")
        if f"{prefix}DEBUG" in env:
            values["debug"] = env[f"{prefix}DEBUG"].lower() in ("1", "true", "yes")

        values.update(overrides)
        return cls(**values)


__all__ = ["ClientConfig", "DEFAULT_API_VERSION", "DEFAULT_DEVICE_TOKEN_ERRORS"]
