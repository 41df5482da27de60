# SPDX-FileCopyrightText: 2025 Lucas S
#
# SPDX-License-Identifier: GPL-3.0-or-later

import asyncio
import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Mapping, Self

import httpx

from restpack import __version__
from restpack.body import MULTIPART_FORM_DATA, CompiledBody, compile_body
from restpack.config import ClientSettings
from restpack.params import CookieParam, Param
from restpack.request import Request
from restpack.url import BaseURL, compile_url

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"restpack/{__version__}"


@dataclass
class CompiledRequest:
    """Everything the transport needs to put a `Request` on the wire."""

    method: str
    url: str
    body: CompiledBody
    headers: list[tuple[str, str]] = field(default_factory=list)
    cookies: list[CookieParam] = field(default_factory=list)

    @property
    def content_type(self) -> str | None:
        return self.body.content_type

    def cookie_header(self) -> str | None:
        if not self.cookies:
            return None
        return "; ".join(f"{cookie.name}={cookie.value}" for cookie in self.cookies)

    def apply_headers(self, headers: httpx.Headers) -> httpx.Headers:
        """
        Merge this request's headers and cookies into `headers`.

        Headers are appended next to existing ones with the same name. The
        compiled content type is only used when none is set already, unless
        it is a multipart one which always replaces it.
        """
        items = [*headers.multi_items(), *self.headers]
        merged = httpx.Headers(items)

        if self.content_type and (
            "content-type" not in merged
            or self.content_type.startswith(MULTIPART_FORM_DATA)
        ):
            merged["Content-Type"] = self.content_type

        cookie_header = self.cookie_header()
        if cookie_header:
            existing = merged.get("cookie")
            merged["Cookie"] = (
                f"{existing}; {cookie_header}" if existing else cookie_header
            )

        return merged


def compile_request(
    request: Request,
    base_url: BaseURL = None,
) -> CompiledRequest:
    """Compile URL and body of `request`, failing before anything is returned."""
    url = compile_url(request, base_url)
    body = compile_body(request)
    return CompiledRequest(
        method=request.method_or_default,
        url=url,
        body=body,
        headers=[(header.name, header.value) for header in request.headers],
        cookies=list(request.cookies),
    )


class RestClient:
    """
    Sends `Request` objects through an `httpx.AsyncClient`.

    Compilation runs in a worker thread so that streaming files from disk does
    not block the event loop. Transport errors are raised as httpx raises
    them.
    """

    def __init__(
        self,
        base_url: BaseURL = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        self.settings = settings if settings is not None else ClientSettings.from_env()

        self.base_url: BaseURL = (
            base_url if base_url is not None else self.settings.base_url
        )
        self.headers: dict[str, str] = {**self.settings.headers, **(headers or {})}
        self.user_agent = user_agent or self.settings.user_agent or DEFAULT_USER_AGENT
        self.timeout = timeout if timeout is not None else self.settings.timeout

        self._client = httpx.AsyncClient(transport=transport, timeout=self.timeout)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def build_headers(self, compiled: CompiledRequest) -> httpx.Headers:
        headers = compiled.apply_headers(httpx.Headers(self.headers))
        if "user-agent" not in headers:
            headers["User-Agent"] = self.user_agent
        return headers

    async def send(self, request: Request) -> httpx.Response:
        compiled = await asyncio.to_thread(compile_request, request, self.base_url)

        content: bytes | None = None
        if compiled.body.stream is not None:
            content = await asyncio.to_thread(compiled.body.read)

        http_request = self._client.build_request(
            compiled.method,
            compiled.url,
            content=content,
            headers=self.build_headers(compiled),
        )

        logger.debug("Sending %s %s", compiled.method, compiled.url)
        response = await self._client.send(http_request)
        logger.debug(
            "Received %s for %s %s", response.status_code, compiled.method, compiled.url
        )
        return response

    async def execute(self, method: str, resource: str, *params: Any) -> httpx.Response:
        """
        Build a request from `params` and send it.

        Each param is either a `Param` or an annotated record whose fields are
        extracted.
        """
        request = Request(method, resource)
        for param in params:
            if isinstance(param, Param):
                request.add_param(param)
            else:
                request.add_object(param)
        return await self.send(request)

    async def get(self, resource: str, *params: Any) -> httpx.Response:
        return await self.execute("GET", resource, *params)

    async def post(self, resource: str, *params: Any) -> httpx.Response:
        return await self.execute("POST", resource, *params)

    async def put(self, resource: str, *params: Any) -> httpx.Response:
        return await self.execute("PUT", resource, *params)

    async def patch(self, resource: str, *params: Any) -> httpx.Response:
        return await self.execute("PATCH", resource, *params)

    async def delete(self, resource: str, *params: Any) -> httpx.Response:
        return await self.execute("DELETE", resource, *params)


__all__ = [
    "CompiledRequest",
    "compile_request",
    "RestClient",
    "DEFAULT_USER_AGENT",
]
