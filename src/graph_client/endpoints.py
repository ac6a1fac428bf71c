"""
Graph API endpoint resolution.

Builds absolute request URLs from an API version and a relative path, and
attaches the app-secret proof that authenticated calls must carry.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives import hashes, hmac

from .params import APP_SECRET_PROOF_PARAM_NAME, join_query, normalize_path
from .pagination import replace_or_add_query_parameter


VIDEO_UPLOAD_SUFFIXES = ("/videos", "/advideos")


@dataclass(frozen=True)
class GraphEndpoints:
    """Base URLs of the Graph API hosts."""
    graph: str = "https://graph.facebook.com"
    graph_video: str = "https://graph-video.facebook.com"

    def __post_init__(self):
        object.__setattr__(self, "graph", self.graph.rstrip("/"))
        object.__setattr__(self, "graph_video", self.graph_video.rstrip("/"))


def app_secret_proof(access_token: str, app_secret: str) -> str:
    """
    Compute the app-secret proof for an access token.

    Args:
        access_token: Token being sent with the call
        app_secret: Application secret used as the HMAC key

    Returns:
        Hex-encoded HMAC-SHA256 of the access token
    """
    mac = hmac.HMAC(app_secret.encode("utf-8"), hashes.SHA256())
    mac.update(access_token.encode("utf-8"))
    return mac.finalize().hex()


class EndpointResolver:
    """
    Resolves relative API paths into absolute URLs.

    When both an access token and an app secret are configured, every
    resolved URL carries the secret proof as a query parameter.
    """

    def __init__(self, api_version: Optional[str], access_token: Optional[str] = None,
                 app_secret: Optional[str] = None, endpoints: Optional[GraphEndpoints] = None):
        self.api_version = api_version
        self.endpoints = endpoints or GraphEndpoints()
        self._proof = (
            app_secret_proof(access_token, app_secret)
            if access_token and app_secret else None
        )

    @property
    def has_secret_proof(self) -> bool:
        return self._proof is not None

    def base_url(self, path: str, has_attachment: bool) -> str:
        """Select the host for a call and prefix the API version segment."""
        base = self.endpoints.graph
        if has_attachment and path.endswith(VIDEO_UPLOAD_SUFFIXES):
            base = self.endpoints.graph_video
        if self.api_version:
            base = f"{base}/{self.api_version}"
        return base

    def resolve(self, path: str, has_attachment: bool = False) -> str:
        """
        Build the absolute URL of an API call.

        Args:
            path: Relative endpoint, e.g. "me/feed"
            has_attachment: Whether the call carries binary attachments

        Returns:
            Absolute URL, with the secret proof appended when configured
        """
        path = normalize_path(path)
        url = self.base_url(path, has_attachment) + path
        if self._proof:
            url = join_query(url, f"{APP_SECRET_PROOF_PARAM_NAME}={self._proof}")
        return url

    def sign_url(self, url: str) -> str:
        """Set the secret proof on an absolute URL, e.g. a page-continuation URL."""
        if not self._proof:
            return url
        return replace_or_add_query_parameter(url, APP_SECRET_PROOF_PARAM_NAME, self._proof)


__all__ = ["GraphEndpoints", "EndpointResolver", "app_secret_proof", "VIDEO_UPLOAD_SUFFIXES"]
