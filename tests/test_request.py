"""
Tests for the Request accumulator.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import pytest

from restpack.errors import BodySerializationError, FileAccessError
from restpack.extract import Header, Query
from restpack.params import (
    JSON_CONTENT_TYPE,
    BodyParam,
    CookieParam,
    FileParam,
    FormFieldParam,
    HeaderParam,
    PathSegmentParam,
    QueryParam,
)
from restpack.request import Request


@dataclass
class Filters:
    status: Annotated[str, Query("status")] = ""
    trace: Annotated[str, Header("X-Trace")] = ""


class TestRequestAccumulator:
    """Test suite for Request.add_param and friends."""

    def test_params_are_classified(self) -> None:
        request = Request("POST", "/items").add_params(
            QueryParam("a", "1"),
            PathSegmentParam("id", "2"),
            HeaderParam("X-A", "3"),
            CookieParam("sid", "4"),
            FormFieldParam("f", "5"),
            FileParam.from_bytes("file", "a.txt", b"6"),
        )

        assert request.queries == [QueryParam("a", "1")]
        assert request.segments == [PathSegmentParam("id", "2")]
        assert request.headers == [HeaderParam("X-A", "3")]
        assert request.cookies == [CookieParam("sid", "4")]
        assert request.form_fields == [FormFieldParam("f", "5")]
        assert [file.field_name for file in request.files] == ["file"]
        assert request.body is None

    def test_insertion_order_is_kept(self) -> None:
        request = (
            Request()
            .add_query("a", "1")
            .add_query("b", "2")
            .add_query("a", "3")
        )

        assert [(q.name, q.value) for q in request.queries] == [
            ("a", "1"),
            ("b", "2"),
            ("a", "3"),
        ]

    def test_last_body_wins(self) -> None:
        first = BodyParam("text/plain", b"first")
        second = BodyParam("text/plain", b"second")

        request = Request("POST").add_param(first).add_param(second)

        assert request.body is second

    def test_mutators_return_the_request(self) -> None:
        request = Request("POST", "/x")

        assert request.add_cookie("a", "1") is request
        assert request.add_header("a", "1") is request
        assert request.add_segment("a", "1") is request
        assert request.add_form_field("a", "1") is request
        assert request.add_file_bytes("a", "a.txt", b"1") is request
        assert request.set_body("text/plain", b"1") is request
        assert request.with_content_type("text/plain") is request

    def test_add_segment_with_format(self) -> None:
        request = Request().add_segment("id", "7", "{%s}")

        assert request.segments == [PathSegmentParam("id", "7", "{%s}")]

    def test_add_object(self) -> None:
        request = Request("GET", "/items").add_object(
            Filters(status="open", trace="t-1")
        )

        assert request.queries == [QueryParam("status", "open")]
        assert request.headers == [HeaderParam("X-Trace", "t-1")]

    def test_add_param_rejects_non_params(self) -> None:
        with pytest.raises(TypeError):
            Request().add_param("status=open")  # type: ignore[arg-type]

    def test_method_defaults_to_get(self) -> None:
        assert Request("").method_or_default == "GET"
        assert Request("post").method_or_default == "POST"


class TestCapturedErrors:
    """Test suite for errors recorded on the request instead of raised."""

    def test_json_body(self) -> None:
        request = Request("POST").set_json_body({"a": 1})

        assert request.error is None
        assert request.body is not None
        assert request.body.content_type == JSON_CONTENT_TYPE
        request.raise_for_error()

    def test_json_body_failure_is_captured(self) -> None:
        request = Request("POST").set_json_body(object())

        assert isinstance(request.error, BodySerializationError)
        assert request.body is None
        with pytest.raises(BodySerializationError):
            request.raise_for_error()

    def test_xml_body_failure_is_captured(self) -> None:
        request = Request("POST").set_xml_body(["not", "a", "document"])

        assert isinstance(request.error, BodySerializationError)

    def test_missing_file_is_captured(self, tmp_path: Path) -> None:
        request = Request("POST").add_file_path("doc", tmp_path / "missing.pdf")

        assert isinstance(request.error, FileAccessError)
        assert request.files == []
        with pytest.raises(FileAccessError):
            request.raise_for_error()

    def test_file_path(self, text_file: Path) -> None:
        request = Request("POST").add_file_path("doc", text_file)

        assert request.error is None
        assert request.files[0].file_name == "notes.txt"
