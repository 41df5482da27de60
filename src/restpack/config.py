# SPDX-FileCopyrightText: 2025 Lucas S
#
# SPDX-License-Identifier: GPL-3.0-or-later

import logging
import os
from dataclasses import dataclass, field
from typing import Optional, TypeVar, overload

logger = logging.getLogger(__name__)

ENV_PREFIX = "RESTPACK_"

DEFAULT_TIMEOUT = 30.0


DF_STR_T = TypeVar("DF_STR_T", bound="Optional[str]")


@overload
def get_env_str(var_name: str, default: None = None) -> str | None: ...


@overload
def get_env_str(var_name: str, default: DF_STR_T) -> DF_STR_T | str: ...


def get_env_str(var_name: str, default: DF_STR_T = None) -> DF_STR_T | str:  # type: ignore[assignment]
    value = os.getenv(var_name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def get_env_seconds(var_name: str, default: float) -> float:
    """Read a positive number of seconds, falling back to `default` with a warning."""
    value = get_env_str(var_name)
    if value is None:
        return default
    try:
        seconds = float(value)
    except ValueError:
        seconds = 0.0
    if seconds <= 0:
        logger.warning(
            "Invalid %s=%r, using %s seconds", var_name, value, default
        )
        return default
    return seconds


def get_env_headers(var_name: str) -> dict[str, str]:
    """
    Read headers written as ``Name=value,Other=value``.

    Items without ``=`` or with an empty name are skipped with a warning.
    """
    value = get_env_str(var_name)
    headers: dict[str, str] = {}
    if value is None:
        return headers
    for item in value.split(","):
        name, separator, header_value = item.partition("=")
        name = name.strip()
        if not item.strip():
            continue
        if not separator or not name:
            logger.warning("Skipping malformed header %r in %s", item, var_name)
            continue
        headers[name] = header_value.strip()
    return headers


@dataclass
class ClientSettings:
    """
    Defaults of `RestClient`, usually read from the environment:

    - ``RESTPACK_BASE_URL``: base URL relative resources are joined onto
    - ``RESTPACK_TIMEOUT``: request timeout in seconds
    - ``RESTPACK_USER_AGENT``: value sent when no User-Agent is set
    - ``RESTPACK_HEADERS``: global headers as ``Name=value,Other=value``
    """

    base_url: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "ClientSettings":
        return cls(
            base_url=get_env_str(f"{prefix}BASE_URL"),
            timeout=get_env_seconds(f"{prefix}TIMEOUT", DEFAULT_TIMEOUT),
            user_agent=get_env_str(f"{prefix}USER_AGENT"),
            headers=get_env_headers(f"{prefix}HEADERS"),
        )


__all__ = [
    "ClientSettings",
    "get_env_str",
    "get_env_seconds",
    "get_env_headers",
]
