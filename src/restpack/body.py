# SPDX-FileCopyrightText: 2025 Lucas S
#
# SPDX-License-Identifier: GPL-3.0-or-later

import io
import logging
from contextlib import ExitStack
from dataclasses import dataclass
from typing import IO, Any, Iterable
from urllib.parse import urlencode

import httpx

from restpack.errors import MultipartWriteError
from restpack.params import FileParam, FormFieldParam, open_content
from restpack.request import Request

logger = logging.getLogger(__name__)

FORM_URLENCODED = "application/x-www-form-urlencoded"
MULTIPART_FORM_DATA = "multipart/form-data"

# Only the payload of this request is used, it is never sent.
_ENCODING_URL = "/"


@dataclass
class CompiledBody:
    stream: IO[bytes] | None
    content_type: str | None

    def read(self) -> bytes:
        if self.stream is None:
            return b""
        return self.stream.read()


def compile_body(request: Request) -> CompiledBody:
    """
    Build the payload of `request` and its content type.

    GET requests never carry a body. Otherwise, in order of precedence: the
    explicit body, the form fields url-encoded when there are no files,
    or a multipart payload with the form fields followed by the files.

    The derived content type is remembered on the request. A content type set
    with `Request.with_content_type` takes precedence, except over multipart
    payloads whose content type carries the boundary.
    """
    request.raise_for_error()

    if request.method_or_default == "GET":
        logger.debug("Skipping body for GET %s", request.resource)
        return CompiledBody(stream=None, content_type=None)

    stream: IO[bytes]
    content_type: str | None
    if request.body is not None:
        logger.debug("Using explicit %s body", request.body.content_type)
        stream = _body_stream(request.body.content)
        content_type = request.body.content_type or None
    elif not request.files:
        logger.debug("Encoding %s form fields", len(request.form_fields))
        stream = io.BytesIO(encode_form(request.form_fields))
        content_type = FORM_URLENCODED
    else:
        logger.debug(
            "Encoding multipart body with %s fields and %s files",
            len(request.form_fields),
            len(request.files),
        )
        stream, content_type = encode_multipart(request.form_fields, request.files)

    if content_type is not None and content_type.startswith(MULTIPART_FORM_DATA):
        if request.explicit_content_type:
            logger.warning(
                "Ignoring content type %r for multipart body", request.content_type
            )
        request.content_type = content_type
    elif request.explicit_content_type:
        content_type = request.content_type
    elif content_type is not None:
        request.content_type = content_type

    return CompiledBody(stream=stream, content_type=content_type)


def _body_stream(content: bytes | IO[bytes]) -> IO[bytes]:
    if isinstance(content, bytes):
        return io.BytesIO(content)
    if not content.seekable():
        # Handed over as is, it can be read by a single compilation only.
        return content
    start = content.tell()
    data = content.read()
    content.seek(start)
    return io.BytesIO(data)


def encode_form(fields: Iterable[FormFieldParam]) -> bytes:
    return urlencode([(field.name, field.value) for field in fields]).encode("ascii")


def encode_multipart(
    fields: Iterable[FormFieldParam],
    files: Iterable[FileParam],
    boundary: str | None = None,
) -> tuple[IO[bytes], str]:
    """
    Encode form fields then files as multipart/form-data.

    The payload is produced by httpx, which reads the files in bounded
    chunks. Files on disk stay open only while encoding. On failure nothing
    is returned and the error is raised.
    """
    parts: list[tuple[str, Any]] = [
        (field.name, (None, field.value, field.content_type)) for field in fields
    ]
    headers = (
        {"Content-Type": f"{MULTIPART_FORM_DATA}; boundary={boundary}"}
        if boundary
        else None
    )

    with ExitStack() as stack:
        for file in files:
            fileobj = stack.enter_context(open_content(file.content))
            parts.append(
                (file.field_name, (file.file_name, fileobj, file.content_type or None))
            )

        try:
            encoded = httpx.Request(
                "POST", _ENCODING_URL, files=parts, headers=headers
            )
            payload = encoded.read()
        except (OSError, TypeError, ValueError) as err:
            raise MultipartWriteError([name for name, _ in parts], err) from err

    return io.BytesIO(payload), encoded.headers["content-type"]


__all__ = [
    "FORM_URLENCODED",
    "MULTIPART_FORM_DATA",
    "CompiledBody",
    "compile_body",
    "encode_form",
    "encode_multipart",
]
