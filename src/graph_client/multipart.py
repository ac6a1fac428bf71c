"""
Multipart upload encoding.

Frames binary attachments into a streamed multipart/form-data body. Each
attachment's bytes are pulled from its source only while the body is being
sent, so large uploads are never buffered in full.
"""

from __future__ import annotations
import asyncio
import logging
import mimetypes
import os
from dataclasses import dataclass, field
from typing import AsyncIterable, AsyncIterator, Callable, Dict, Iterable, List, Optional, Sequence, Union
from uuid import uuid4

from .errors import InvalidArgumentError


logger = logging.getLogger(__name__)

CRLF = "\r\n"
TWO_HYPHENS = "--"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_CHUNK_SIZE = 64 * 1024

ByteSource = Callable[[], AsyncIterator[bytes]]


@dataclass(frozen=True)
class Attachment:
    """
    Binary file sent with a publish or batch call.

    `source` is a zero-argument callable producing a fresh async byte
    iterator, called once per request attempt.
    """
    filename: str
    source: ByteSource = field(repr=False)
    content_type: str = ""
    field_name: Optional[str] = None

    def __post_init__(self):
        if not self.filename or not self.filename.strip():
            raise InvalidArgumentError("Binary attachment filename cannot be blank.")
        if not self.content_type:
            object.__setattr__(self, "content_type", guess_content_type(self.filename))
        if self.field_name is not None and not self.field_name.strip():
            raise InvalidArgumentError("Field name cannot be blank.")
        for value in (self.filename, self.field_name or ""):
            if "\r" in value or "\n" in value:
                raise InvalidArgumentError("Attachment names cannot contain line breaks.")

    @property
    def form_field_name(self) -> str:
        """
        Form field name of the attachment.

        An explicit field name that differs from the filename wins; otherwise
        the filename with its extension stripped, e.g. "test.png" -> "test".
        """
        if self.field_name and self.field_name != self.filename:
            return self.field_name
        name = self.filename
        dot = name.rfind(".")
        return name[:dot] if dot > 0 else name

    def open(self) -> AsyncIterator[bytes]:
        """Start a new read of the attachment's bytes."""
        return self.source()

    @classmethod
    def from_bytes(cls, filename: str, data: bytes, content_type: str = "",
                   field_name: Optional[str] = None) -> Attachment:
        payload = bytes(data)

        async def source() -> AsyncIterator[bytes]:
            yield payload

        return cls(filename, source, content_type, field_name)

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike], content_type: str = "",
                  field_name: Optional[str] = None, filename: Optional[str] = None,
                  chunk_size: int = DEFAULT_CHUNK_SIZE) -> Attachment:
        """Attach a file from disk, read in chunks off the event loop."""
        path = os.fspath(path)

        async def source() -> AsyncIterator[bytes]:
            handle = await asyncio.to_thread(open, path, "rb")
            try:
                while True:
                    chunk = await asyncio.to_thread(handle.read, chunk_size)
                    if not chunk:
                        break
                    yield chunk
            finally:
                handle.close()

        return cls(filename or os.path.basename(path), source, content_type, field_name)

    @classmethod
    def from_stream(cls, filename: str, stream_factory: Callable[[], Union[AsyncIterable[bytes], Iterable[bytes]]],
                    content_type: str = "", field_name: Optional[str] = None) -> Attachment:
        """Attach bytes produced by a caller-supplied (async or sync) iterable factory."""

        async def source() -> AsyncIterator[bytes]:
            stream = stream_factory()
            if hasattr(stream, "__aiter__"):
                async for chunk in stream:
                    yield chunk
            else:
                for chunk in stream:
                    yield chunk

        return cls(filename, source, content_type, field_name)


def guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or DEFAULT_CONTENT_TYPE


def _quote(value: str) -> str:
    return value.replace('"', "%22")


@dataclass(frozen=True)
class MultipartBody:
    """Headers and lazily produced byte stream of a multipart request."""
    boundary: str
    headers: Dict[str, str]
    stream: AsyncIterator[bytes] = field(repr=False)


class MultipartEncoder:
    """
    Encodes attachments as multipart/form-data.

    For each attachment, in order: boundary line, Content-Disposition and
    Content-Type headers, a blank line, the raw bytes, then CRLF. The body
    ends with a single closing boundary.
    """

    def __init__(self, boundary_factory: Callable[[], str] = lambda: f"graphclient{uuid4().hex}"):
        self._boundary_factory = boundary_factory

    def encode(self, attachments: Sequence[Attachment]) -> MultipartBody:
        """
        Frame attachments into a streamed multipart body.

        Framing is computed eagerly; attachment bytes are only read while
        the returned stream is consumed.

        Raises:
            InvalidArgumentError: If no attachments are given
        """
        if not attachments:
            raise InvalidArgumentError("Multipart encoding requires at least one attachment; use a plain POST instead")

        boundary = self._boundary_factory()
        prefixes = [self.attachment_prefix(boundary, attachment) for attachment in attachments]
        headers = {
            "Content-Type": f"multipart/form-data; boundary={boundary}",
            "Connection": "keep-alive",
        }
        stream = self._stream(list(attachments), prefixes, boundary)
        return MultipartBody(boundary=boundary, headers=headers, stream=stream)

    @staticmethod
    def attachment_prefix(boundary: str, attachment: Attachment) -> bytes:
        return (
            f"{TWO_HYPHENS}{boundary}{CRLF}"
            f"Content-Disposition: form-data; name=\"{_quote(attachment.form_field_name)}\"; "
            f"filename=\"{_quote(attachment.filename)}\"{CRLF}"
            f"Content-Type: {attachment.content_type}{CRLF}"
            f"{CRLF}"
        ).encode("utf-8")

    @staticmethod
    def closing_boundary(boundary: str) -> bytes:
        return f"{TWO_HYPHENS}{boundary}{TWO_HYPHENS}{CRLF}".encode("utf-8")

    async def _stream(self, attachments: List[Attachment], prefixes: List[bytes],
                      boundary: str) -> AsyncIterator[bytes]:
        for attachment, prefix in zip(attachments, prefixes):
            yield prefix
            chunks = attachment.open()
            try:
                async for chunk in chunks:
                    if chunk:
                        yield bytes(chunk)
            finally:
                aclose = getattr(chunks, "aclose", None)
                if aclose is not None:
                    await aclose()
            yield CRLF.encode("utf-8")
            logger.debug(f"Streamed attachment {attachment.filename}")
        yield self.closing_boundary(boundary)


__all__ = ["Attachment", "MultipartBody", "MultipartEncoder", "guess_content_type"]
