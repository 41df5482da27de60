# SPDX-FileCopyrightText: 2025 Lucas S
#
# SPDX-License-Identifier: GPL-3.0-or-later

import os
from typing import Sequence


class RestPackError(Exception):
    """Base exception for request compilation errors."""


class InvalidURLError(RestPackError, ValueError):
    """Raised when the resource cannot be turned into a request URL."""

    def __init__(self, resource: str, reason: str) -> None:
        self.resource = resource
        self.reason = reason
        super().__init__(f"Invalid request URL {resource!r}: {reason}")


class BodySerializationError(RestPackError):
    """Raised when a structured body (JSON, XML) could not be encoded."""

    def __init__(self, content_type: str, original_exception: Exception) -> None:
        self.content_type = content_type
        self.original_exception = original_exception
        super().__init__(
            f"Could not serialize body as {content_type}: {original_exception}"
        )


class FileAccessError(RestPackError):
    """Raised when a file parameter cannot be opened, stat'd or read."""

    def __init__(
        self, path: "str | os.PathLike[str]", original_exception: Exception
    ) -> None:
        self.path = os.fspath(path)
        self.original_exception = original_exception
        super().__init__(f"Could not access file {self.path!r}: {original_exception}")


class MultipartWriteError(RestPackError):
    """Raised when the multipart payload could not be encoded."""

    def __init__(
        self, field_names: Sequence[str], original_exception: Exception
    ) -> None:
        self.field_names = tuple(field_names)
        self.original_exception = original_exception
        super().__init__(
            f"Could not encode multipart parts {list(self.field_names)!r}: "
            f"{original_exception}"
        )


__all__ = [
    "RestPackError",
    "InvalidURLError",
    "BodySerializationError",
    "FileAccessError",
    "MultipartWriteError",
]
