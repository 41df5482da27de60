# SPDX-FileCopyrightText: 2025 Lucas S
#
# SPDX-License-Identifier: GPL-3.0-or-later

import logging
import os
from typing import IO, Any, Self

from restpack.errors import BodySerializationError, FileAccessError, RestPackError
from restpack.extract import params_from_object
from restpack.params import (
    DEFAULT_SEGMENT_FORMAT,
    BodyParam,
    CookieParam,
    FileParam,
    FormFieldParam,
    HeaderParam,
    Param,
    ParamKind,
    PathSegmentParam,
    QueryParam,
    classify,
)

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "GET"


class Request:
    """
    Accumulates the parameters of one outgoing request.

    Every mutator returns the request itself so calls can be chained::

        request = (
            Request("POST", "/users/:id/avatar")
            .add_segment("id", "42")
            .add_header("X-Trace", "abc")
            .add_file_path("avatar", "./me.png")
        )

    Helpers that may fail while building (body serialization, file probing)
    store the failure in `error` instead of raising; check it with
    `raise_for_error()` before treating the request as ready.
    """

    def __init__(self, method: str = DEFAULT_METHOD, resource: str = "") -> None:
        self.method = method
        self.resource = resource

        self.cookies: list[CookieParam] = []
        self.headers: list[HeaderParam] = []
        self.queries: list[QueryParam] = []
        self.segments: list[PathSegmentParam] = []
        self.form_fields: list[FormFieldParam] = []
        self.files: list[FileParam] = []
        self.body: BodyParam | None = None

        self.content_type: str | None = None
        self.explicit_content_type = False

        self.error: RestPackError | None = None

    def __repr__(self) -> str:
        return f"Request({self.method_or_default!r}, {self.resource!r})"

    @property
    def method_or_default(self) -> str:
        return self.method.upper() if self.method else DEFAULT_METHOD

    def add_param(self, param: Param) -> Self:
        kind = classify(param)
        if kind is ParamKind.COOKIE:
            self.cookies.append(param)  # type: ignore[arg-type]
        elif kind is ParamKind.HEADER:
            self.headers.append(param)  # type: ignore[arg-type]
        elif kind is ParamKind.QUERY:
            self.queries.append(param)  # type: ignore[arg-type]
        elif kind is ParamKind.SEGMENT:
            self.segments.append(param)  # type: ignore[arg-type]
        elif kind is ParamKind.FORM:
            self.form_fields.append(param)  # type: ignore[arg-type]
        elif kind is ParamKind.FILE:
            self.files.append(param)  # type: ignore[arg-type]
        elif kind is ParamKind.BODY:
            if self.body is not None:
                logger.debug(
                    "Replacing body %s with %s", self.body.param_name, param.param_name
                )
            self.body = param  # type: ignore[assignment]
        return self

    def add_params(self, *params: Param) -> Self:
        for param in params:
            self.add_param(param)
        return self

    def add_object(self, obj: Any) -> Self:
        """Add every parameter declared by the annotations of `obj`."""
        return self.add_params(*params_from_object(obj))

    def add_cookie(self, name: str, value: str) -> Self:
        return self.add_param(CookieParam(name=name, value=value))

    def add_header(self, name: str, value: str) -> Self:
        return self.add_param(HeaderParam(name=name, value=value))

    def add_query(self, name: str, value: str) -> Self:
        return self.add_param(QueryParam(name=name, value=value))

    def add_segment(
        self, name: str, value: str, format: str = DEFAULT_SEGMENT_FORMAT
    ) -> Self:
        return self.add_param(PathSegmentParam(name=name, value=value, format=format))

    def add_form_field(
        self, name: str, value: str, content_type: str | None = None
    ) -> Self:
        return self.add_param(
            FormFieldParam(name=name, value=value, content_type=content_type)
        )

    def add_file_bytes(self, field_name: str, file_name: str, data: bytes) -> Self:
        return self.add_param(FileParam.from_bytes(field_name, file_name, data))

    def add_file_path(self, field_name: str, file_path: "str | os.PathLike[str]") -> Self:
        try:
            param = FileParam.from_path(field_name, file_path)
        except FileAccessError as err:
            logger.debug("Could not add file %s: %s", err.path, err)
            self.error = err
            return self
        return self.add_param(param)

    def set_body(self, content_type: str, content: bytes | IO[bytes]) -> Self:
        return self.add_param(BodyParam(content_type=content_type, content=content))

    def set_json_body(self, obj: Any) -> Self:
        try:
            param = BodyParam.json(obj)
        except BodySerializationError as err:
            self.error = err
            return self
        return self.add_param(param)

    def set_xml_body(self, obj: Any, root: str | None = None) -> Self:
        try:
            param = BodyParam.xml(obj, root=root)
        except BodySerializationError as err:
            self.error = err
            return self
        return self.add_param(param)

    def with_content_type(self, content_type: str) -> Self:
        self.content_type = content_type
        self.explicit_content_type = True
        return self

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


__all__ = ["Request", "DEFAULT_METHOD"]
