# SPDX-FileCopyrightText: 2025 Lucas S
#
# SPDX-License-Identifier: GPL-3.0-or-later

import logging
import posixpath
import re
from typing import Iterable
from urllib.parse import SplitResult, urlencode, urlsplit, urlunsplit

import httpx

from restpack.errors import InvalidURLError
from restpack.params import PathSegmentParam, QueryParam
from restpack.request import Request

logger = logging.getLogger(__name__)

BaseURL = str | httpx.URL | None


def compile_url(request: Request, base_url: BaseURL = None) -> str:
    """
    Resolve the final URL of `request`.

    An absolute resource replaces `base_url`, a relative one is joined onto
    its path. Query parameters are appended after any existing query and path
    segments are substituted last, over the whole URL.
    """
    resource = request.resource
    resource_parts = _split(resource, resource)

    if _is_absolute(resource_parts):
        parts = resource_parts
    elif base_url is None or str(base_url) == "":
        if resource_parts.scheme or resource_parts.netloc:
            raise InvalidURLError(resource, "URL needs both a scheme and a host")
        if not resource_parts.path.startswith("/"):
            raise InvalidURLError(resource, "not an absolute URL and no base URL given")
        parts = resource_parts
    else:
        base_parts = _split(str(base_url), resource)
        path, query, fragment = _split_relative(resource)
        parts = base_parts._replace(
            path=join_path(base_parts.path, path),
            query=_merge_query(base_parts.query, query),
            fragment=fragment or base_parts.fragment,
        )

    parts = parts._replace(query=append_queries(parts.query, request.queries))
    url = urlunsplit(parts)

    try:
        url = substitute_segments(url, request.segments)
    except (TypeError, ValueError) as err:
        raise InvalidURLError(resource, f"bad path segment format: {err}") from err

    logger.debug("Compiled URL for %r: %s", request, url)
    return url


def _split(url: str, resource: str) -> SplitResult:
    try:
        return urlsplit(url)
    except ValueError as err:
        raise InvalidURLError(resource, str(err)) from err


def _split_relative(resource: str) -> tuple[str, str, str]:
    # urlsplit would read a leading "//" as a host.
    rest, _, fragment = resource.partition("#")
    path, _, query = rest.partition("?")
    return path, query, fragment


def _is_absolute(parts: SplitResult) -> bool:
    return bool(parts.scheme and parts.netloc)


def _merge_query(*queries: str) -> str:
    return "&".join(query for query in queries if query)


def join_path(base: str, resource: str) -> str:
    """Join `resource` onto `base`, collapsing duplicate separators and dot segments."""
    if not resource:
        joined = base or "/"
    else:
        joined = posixpath.join(base or "/", resource.lstrip("/"))
    cleaned = posixpath.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    if not cleaned.startswith("/"):
        cleaned = "/" + cleaned.lstrip(".")
    return cleaned


def append_queries(existing: str, queries: Iterable[QueryParam]) -> str:
    """Append `queries` in order to the raw `existing` query string, duplicates kept."""
    encoded = urlencode([(query.name, query.value) for query in queries])
    return _merge_query(existing, encoded)


def substitute_segments(url: str, segments: Iterable[PathSegmentParam]) -> str:
    """
    Replace every segment placeholder in `url` in a single pass.

    Replacement values are never scanned again, so a value that looks like
    another placeholder stays as is. When two placeholders match at the same
    position the longest one wins, ties go to the first added.
    """
    replacements: dict[str, str] = {}
    for segment in segments:
        placeholder = segment.placeholder
        if placeholder:
            replacements.setdefault(placeholder, segment.value)

    if not replacements:
        return url

    tokens = sorted(replacements, key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(token) for token in tokens))
    return pattern.sub(lambda match: replacements[match.group(0)], url)


__all__ = [
    "BaseURL",
    "compile_url",
    "join_path",
    "append_queries",
    "substitute_segments",
]
