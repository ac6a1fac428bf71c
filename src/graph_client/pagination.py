"""
Connection pagination.

Resolves the URL of the next or previous page of a connection from its
paging metadata. An explicit `next`/`previous` URL wins over a cursor; a
cursor is applied to the URL the page was fetched from.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Optional
from urllib.parse import quote, unquote_plus

if TYPE_CHECKING:
    from .types import Page


HTTP_PREFIX = "http://"
HTTPS_PREFIX = "https://"
AFTER_PARAMETER = "after"
BEFORE_PARAMETER = "before"


def secure_url(url: Optional[str]) -> Optional[str]:
    """Rewrite an insecure URL to the secure scheme."""
    if url is not None and url.startswith(HTTP_PREFIX):
        return HTTPS_PREFIX + url[len(HTTP_PREFIX):]
    return url


def replace_or_add_query_parameter(url: str, name: str, value: str) -> str:
    """
    Set a query parameter on a URL.

    The first occurrence of `name` is replaced in place and later duplicates
    are dropped; otherwise the parameter is appended. All other query
    segments and the fragment are kept byte for byte.
    """
    fragment = ""
    if "#" in url:
        url, fragment = url.split("#", 1)
        fragment = "#" + fragment

    pair = f"{name}={quote(value, safe='')}"
    if "?" not in url:
        return f"{url}?{pair}{fragment}"

    base, query = url.split("?", 1)
    segments = []
    replaced = False
    for segment in query.split("&") if query else []:
        if unquote_plus(segment.split("=", 1)[0]) == name:
            if not replaced:
                segments.append(pair)
                replaced = True
            continue
        segments.append(segment)
    if not replaced:
        segments.append(pair)

    return f"{base}?{'&'.join(segments)}{fragment}"


class PaginationResolver:
    """Computes continuation URLs for connection pages."""

    @staticmethod
    def next_url(page: Page) -> Optional[str]:
        """URL of the following page, or None if this is the last one."""
        return PaginationResolver._resolve(page, "next", AFTER_PARAMETER)

    @staticmethod
    def previous_url(page: Page) -> Optional[str]:
        """URL of the preceding page, or None if this is the first one."""
        return PaginationResolver._resolve(page, "previous", BEFORE_PARAMETER)

    @staticmethod
    def _resolve(page: Page, direction: str, cursor_parameter: str) -> Optional[str]:
        paging = page.paging
        if paging is None:
            return None

        explicit = getattr(paging, direction)
        if explicit:
            return secure_url(explicit)

        cursor = getattr(paging.cursors, cursor_parameter, None) if paging.cursors else None
        if cursor and page.url:
            return secure_url(replace_or_add_query_parameter(page.url, cursor_parameter, cursor))

        return None


__all__ = [
    "PaginationResolver",
    "replace_or_add_query_parameter",
    "secure_url",
    "AFTER_PARAMETER",
    "BEFORE_PARAMETER",
]
