"""
Tests for RestClient and compile_request, driven through httpx.MockTransport.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, Awaitable, Callable

import httpx
import pytest

from restpack.body import FORM_URLENCODED
from restpack.client import (
    DEFAULT_USER_AGENT,
    CompiledRequest,
    RestClient,
    compile_request,
)
from restpack.config import ClientSettings
from restpack.errors import FileAccessError, InvalidURLError
from restpack.extract import Header, Path as PathMarker, Query
from restpack.params import CookieParam, QueryParam
from restpack.request import Request


@dataclass
class GetUser:
    user_id: Annotated[str, PathMarker("id", required=True)] = ""
    expand: Annotated[list[str], Query("expand")] = field(default_factory=list)
    trace: Annotated[str, Header("X-Trace")] = ""


class Recorder:
    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(200, json={"ok": True})

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def run_with_client(
    recorder: Recorder,
    call: Callable[[RestClient], Awaitable[httpx.Response]],
    settings: ClientSettings | None = None,
    **client_kwargs: Any,
) -> httpx.Response:
    async def main() -> httpx.Response:
        async with RestClient(
            transport=httpx.MockTransport(recorder),
            settings=settings or ClientSettings(base_url="http://api.test/v1"),
            **client_kwargs,
        ) as client:
            return await call(client)

    return asyncio.run(main())


class TestCompileRequest:
    """Test suite for compile_request and CompiledRequest."""

    def test_compile_request(self) -> None:
        request = (
            Request("post", "/users/:id")
            .add_segment("id", "7")
            .add_query("notify", "yes")
            .add_header("X-A", "1")
            .add_cookie("sid", "abc")
            .add_form_field("name", "ana")
        )

        compiled = compile_request(request, "http://api.test")

        assert compiled.method == "POST"
        assert compiled.url == "http://api.test/users/7?notify=yes"
        assert compiled.body.read() == b"name=ana"
        assert compiled.content_type == FORM_URLENCODED
        assert compiled.headers == [("X-A", "1")]
        assert compiled.cookies == [CookieParam("sid", "abc")]

    def test_url_errors_abort_compilation(self) -> None:
        with pytest.raises(InvalidURLError):
            compile_request(Request("POST", "relative").add_form_field("a", "1"))

    def test_apply_headers_appends_and_falls_back(self) -> None:
        compiled = compile_request(
            Request("POST", "/x").add_header("X-Env", "test").add_form_field("a", "1"),
            "http://api.test",
        )

        headers = compiled.apply_headers(
            httpx.Headers({"X-Env": "prod", "Content-Type": "application/vnd.custom"})
        )

        assert headers.get_list("x-env") == ["prod", "test"]
        assert headers["content-type"] == "application/vnd.custom"

    def test_apply_headers_sets_missing_content_type(self) -> None:
        compiled = compile_request(
            Request("POST", "/x").add_form_field("a", "1"), "http://api.test"
        )

        headers = compiled.apply_headers(httpx.Headers())

        assert headers["content-type"] == FORM_URLENCODED

    def test_apply_headers_keeps_multipart_boundary(self) -> None:
        compiled = compile_request(
            Request("POST", "/x")
            .add_header("Content-Type", "multipart/form-data")
            .add_file_bytes("f", "a.txt", b"x"),
            "http://api.test",
        )

        headers = compiled.apply_headers(
            httpx.Headers({"Content-Type": "application/json"})
        )

        assert compiled.content_type is not None
        assert "boundary=" in compiled.content_type
        assert headers.get_list("content-type") == [compiled.content_type]

    def test_cookie_header(self) -> None:
        compiled = CompiledRequest(
            method="GET",
            url="http://api.test",
            body=compile_request(Request("GET", "/")).body,
            cookies=[CookieParam("a", "1"), CookieParam("b", "2")],
        )

        headers = compiled.apply_headers(httpx.Headers({"Cookie": "global=0"}))

        assert headers["cookie"] == "global=0; a=1; b=2"


@pytest.mark.integration
class TestRestClient:
    """Test suite for RestClient over a mock transport."""

    def test_send_form_request(self) -> None:
        recorder = Recorder()
        request = (
            Request("POST", "users/:id/notes")
            .add_segment("id", "42")
            .add_form_field("text", "hi there")
            .add_header("X-Trace", "t-1")
        )

        response = run_with_client(recorder, lambda client: client.send(request))

        assert response.status_code == 200
        sent = recorder.last
        assert sent.method == "POST"
        assert str(sent.url) == "http://api.test/v1/users/42/notes"
        assert sent.content == b"text=hi+there"
        assert sent.headers["content-type"] == FORM_URLENCODED
        assert sent.headers["x-trace"] == "t-1"
        assert sent.headers["user-agent"] == DEFAULT_USER_AGENT

    def test_get_sends_no_body(self) -> None:
        recorder = Recorder()
        request = Request("GET", "items").add_form_field("ignored", "1")

        run_with_client(recorder, lambda client: client.send(request))

        assert recorder.last.content == b""
        assert "content-type" not in recorder.last.headers

    def test_global_headers_and_user_agent(self) -> None:
        recorder = Recorder()
        request = Request("GET", "items").add_header("X-Env", "test")

        run_with_client(
            recorder,
            lambda client: client.send(request),
            headers={"X-Env": "prod"},
            user_agent="tests/1.0",
        )

        assert recorder.last.headers.get_list("x-env") == ["prod", "test"]
        assert recorder.last.headers["user-agent"] == "tests/1.0"

    def test_request_user_agent_is_kept(self) -> None:
        recorder = Recorder()
        request = Request("GET", "items").add_header("User-Agent", "custom/2")

        run_with_client(recorder, lambda client: client.send(request))

        assert recorder.last.headers.get_list("user-agent") == ["custom/2"]

    def test_global_content_type_is_not_overridden(self) -> None:
        recorder = Recorder()
        request = Request("POST", "items").add_form_field("a", "1")

        run_with_client(
            recorder,
            lambda client: client.send(request),
            headers={"Content-Type": "application/vnd.custom"},
        )

        assert recorder.last.headers["content-type"] == "application/vnd.custom"

    def test_cookies_are_sent(self) -> None:
        recorder = Recorder()
        request = Request("GET", "items").add_cookie("a", "1").add_cookie("b", "2")

        run_with_client(recorder, lambda client: client.send(request))

        assert recorder.last.headers["cookie"] == "a=1; b=2"

    def test_multipart_upload_from_disk(self, text_file: Path) -> None:
        recorder = Recorder()
        request = (
            Request("POST", "uploads")
            .add_form_field("title", "notes")
            .add_file_path("file", text_file)
        )

        run_with_client(recorder, lambda client: client.send(request))

        sent = recorder.last
        assert sent.headers["content-type"].startswith("multipart/form-data; boundary=")
        assert b'filename="notes.txt"' in sent.content
        assert b"hello from disk\n" in sent.content

    def test_execute_with_records_and_params(self) -> None:
        recorder = Recorder()

        run_with_client(
            recorder,
            lambda client: client.get(
                "users/:id",
                GetUser(user_id="9", expand=["teams", "roles"], trace="t-2"),
                QueryParam("page", "1"),
            ),
        )

        sent = recorder.last
        assert str(sent.url) == (
            "http://api.test/v1/users/9?expand=teams&expand=roles&page=1"
        )
        assert sent.headers["x-trace"] == "t-2"

    @pytest.mark.parametrize("verb", ["post", "put", "patch", "delete"])
    def test_verb_helpers(self, verb: str) -> None:
        recorder = Recorder()

        run_with_client(recorder, lambda client: getattr(client, verb)("items"))

        assert recorder.last.method == verb.upper()

    def test_compile_errors_are_raised_before_sending(self, tmp_path: Path) -> None:
        recorder = Recorder()
        request = Request("POST", "uploads").add_file_path(
            "file", tmp_path / "missing.bin"
        )

        with pytest.raises(FileAccessError):
            run_with_client(recorder, lambda client: client.send(request))

        assert recorder.requests == []

    def test_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESTPACK_BASE_URL", "http://env.test/api")
        monkeypatch.setenv("RESTPACK_HEADERS", "X-Env=staging")
        recorder = Recorder()

        async def main() -> None:
            async with RestClient(transport=httpx.MockTransport(recorder)) as client:
                await client.get("ping")

        asyncio.run(main())

        assert str(recorder.last.url) == "http://env.test/api/ping"
        assert recorder.last.headers["x-env"] == "staging"
