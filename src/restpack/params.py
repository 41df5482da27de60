# SPDX-FileCopyrightText: 2025 Lucas S
#
# SPDX-License-Identifier: GPL-3.0-or-later

import dataclasses
import io
import logging
import mimetypes
import os
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import IO, Any, ClassVar, Iterator, Mapping, Union

import xmltodict
from pydantic import BaseModel, TypeAdapter

from restpack.errors import BodySerializationError, FileAccessError

logger = logging.getLogger(__name__)

DEFAULT_SEGMENT_FORMAT = ":%s"

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
XML_CONTENT_TYPE = "application/xml; charset=utf-8"
OCTET_STREAM = "application/octet-stream"
TEXT_PLAIN = "text/plain; charset=utf-8"

# Content sniffing never looks past this many bytes.
SNIFF_LEN = 512


class ParamKind(str, Enum):
    COOKIE = "cookie"
    HEADER = "header"
    QUERY = "query"
    SEGMENT = "segment"
    FORM = "form"
    FILE = "file"
    BODY = "body"


class Param:
    """
    Base class of every request parameter.

    The kind decides which list of the request the parameter lands in,
    `param_name` is only used for diagnostics.
    """

    kind: ClassVar[ParamKind]

    @property
    def param_name(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class QueryParam(Param):
    kind: ClassVar[ParamKind] = ParamKind.QUERY

    name: str
    value: str

    @property
    def param_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class PathSegmentParam(Param):
    """
    Replaces a placeholder in the URL.

    The placeholder is built by applying `format` to `name`, so with the
    default format the segment `id` replaces `:id`.
    """

    kind: ClassVar[ParamKind] = ParamKind.SEGMENT

    name: str
    value: str
    format: str = DEFAULT_SEGMENT_FORMAT

    @property
    def param_name(self) -> str:
        return self.name

    @property
    def placeholder(self) -> str:
        return (self.format or DEFAULT_SEGMENT_FORMAT) % self.name


@dataclass(frozen=True)
class HeaderParam(Param):
    kind: ClassVar[ParamKind] = ParamKind.HEADER

    name: str
    value: str

    @property
    def param_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class CookieParam(Param):
    kind: ClassVar[ParamKind] = ParamKind.COOKIE

    name: str
    value: str
    path: str | None = None
    domain: str | None = None
    expires: datetime | None = None
    max_age: int | None = None
    secure: bool = False
    http_only: bool = False
    same_site: str | None = None

    @property
    def param_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class FormFieldParam(Param):
    kind: ClassVar[ParamKind] = ParamKind.FORM

    name: str
    value: str
    content_type: str | None = None
    """Only used when the field is written as a multipart part."""

    @property
    def param_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class InMemoryContent:
    data: bytes


@dataclass(frozen=True)
class OnDiskContent:
    path: str


FileContent = Union[InMemoryContent, OnDiskContent]


@contextmanager
def open_content(content: FileContent) -> Iterator[IO[bytes]]:
    """
    Open the file content for reading.

    Files on disk are opened only here and closed when the block exits,
    failing to open one raises `FileAccessError`.
    """
    if isinstance(content, InMemoryContent):
        with io.BytesIO(content.data) as buffer:
            yield buffer
        return

    if isinstance(content, OnDiskContent):
        try:
            file = open(content.path, "rb")
        except OSError as err:
            raise FileAccessError(content.path, err) from err
        with file:
            yield file
        return

    raise TypeError(f"Unsupported file content: {type(content)!r}")


@dataclass(frozen=True)
class FileParam(Param):
    kind: ClassVar[ParamKind] = ParamKind.FILE

    field_name: str
    file_name: str
    content_type: str
    content_length: int
    content: FileContent

    @property
    def param_name(self) -> str:
        return self.field_name

    @classmethod
    def from_bytes(cls, field_name: str, file_name: str, data: bytes) -> "FileParam":
        return cls(
            field_name=field_name,
            file_name=file_name,
            content_type=detect_content_type(data),
            content_length=len(data),
            content=InMemoryContent(bytes(data)),
        )

    @classmethod
    def from_path(
        cls, field_name: str, file_path: "str | os.PathLike[str]"
    ) -> "FileParam":
        path = os.fspath(file_path)
        content_type, size = detect_content_type_and_size(path)
        return cls(
            field_name=field_name,
            file_name=os.path.basename(path),
            content_type=content_type,
            content_length=size,
            content=OnDiskContent(path),
        )


@dataclass(frozen=True)
class BodyParam(Param):
    """
    A fully formed request body.

    A request holds at most one body, and when present it wins over any
    form field or file.
    """

    kind: ClassVar[ParamKind] = ParamKind.BODY

    content_type: str
    content: bytes | IO[bytes]

    @property
    def param_name(self) -> str:
        return self.content_type

    @classmethod
    def json(cls, obj: Any) -> "BodyParam":
        try:
            if isinstance(obj, BaseModel):
                data = obj.model_dump_json().encode()
            else:
                data = TypeAdapter(Any).dump_json(obj)
        except (TypeError, ValueError) as err:
            raise BodySerializationError(JSON_CONTENT_TYPE, err) from err
        return cls(content_type=JSON_CONTENT_TYPE, content=data)

    @classmethod
    def xml(cls, obj: Any, root: str | None = None) -> "BodyParam":
        try:
            document = _xml_document(obj, root)
            data = xmltodict.unparse(document).encode()
        except (TypeError, ValueError, AttributeError) as err:
            raise BodySerializationError(XML_CONTENT_TYPE, err) from err
        return cls(content_type=XML_CONTENT_TYPE, content=data)


def _xml_document(obj: Any, root: str | None) -> Mapping[str, Any]:
    if isinstance(obj, BaseModel):
        return {root or type(obj).__name__: obj.model_dump(mode="json")}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {root or type(obj).__name__: dataclasses.asdict(obj)}
    if isinstance(obj, Mapping):
        if root is not None:
            return {root: dict(obj)}
        return obj
    raise TypeError(f"Cannot build an XML document from {type(obj).__name__}")


def classify(param: Any) -> ParamKind:
    if isinstance(param, Param):
        return param.kind
    raise TypeError(f"Not a request parameter: {param!r}")


_SIGNATURES: list[tuple[bytes, str]] = [
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"Rar!\x1a\x07", "application/x-rar-compressed"),
    (b"\x00asm", "application/wasm"),
    (b"OggS\x00", "application/ogg"),
    (b"ID3", "audio/mpeg"),
    (b"\x1aE\xdf\xa3", "video/webm"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),
]

_HTML_PREFIXES = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)

# Bytes that never show up in text files.
_BINARY_BYTES = frozenset(
    [*range(0x00, 0x09), 0x0B, *range(0x0E, 0x1B), *range(0x1C, 0x20)]
)


def detect_content_type(data: bytes) -> str:
    """
    Guess the MIME type of `data` from its first bytes.

    Always returns a valid MIME type, `application/octet-stream` when nothing
    more specific matches.
    """
    head = bytes(data[:SNIFF_LEN])

    if head.startswith(b"\xfe\xff") or head.startswith(b"\xff\xfe"):
        return "text/plain; charset=utf-16"
    if head.startswith(b"\xef\xbb\xbf"):
        return TEXT_PLAIN

    for signature, mime in _SIGNATURES:
        if head.startswith(signature):
            return mime

    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "image/webp"
    if head[:4] == b"RIFF" and head[8:12] == b"WAVE":
        return "audio/wave"
    if head[4:8] == b"ftyp":
        return "video/mp4"

    stripped = head.lstrip(b"\t\n\x0c\r ")
    if stripped.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"
    upper = stripped.upper()
    for prefix in _HTML_PREFIXES:
        if upper.startswith(prefix) and upper[len(prefix) : len(prefix) + 1] in (
            b" ",
            b">",
            b"",
        ):
            return "text/html; charset=utf-8"

    if any(byte in _BINARY_BYTES for byte in head):
        return OCTET_STREAM
    return TEXT_PLAIN


def detect_content_type_and_size(file_path: "str | os.PathLike[str]") -> tuple[str, int]:
    """
    Stat and sniff a file on disk.

    When the first bytes say nothing specific the extension is used instead.
    """
    path = os.fspath(file_path)
    try:
        size = os.stat(path).st_size
        with open(path, "rb") as file:
            head = file.read(SNIFF_LEN)
    except OSError as err:
        raise FileAccessError(path, err) from err

    content_type = detect_content_type(head)
    if content_type == OCTET_STREAM:
        guessed, _ = mimetypes.guess_type(path)
        if guessed is not None:
            content_type = guessed

    logger.debug("Detected %s (%s bytes) for %s", content_type, size, path)
    return content_type, size


__all__ = [
    "DEFAULT_SEGMENT_FORMAT",
    "ParamKind",
    "Param",
    "QueryParam",
    "PathSegmentParam",
    "HeaderParam",
    "CookieParam",
    "FormFieldParam",
    "FileParam",
    "BodyParam",
    "InMemoryContent",
    "OnDiskContent",
    "FileContent",
    "open_content",
    "classify",
    "detect_content_type",
    "detect_content_type_and_size",
]
