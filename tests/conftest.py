"""
Pytest configuration and fixtures for restpack tests.
"""

from pathlib import Path
from typing import Generator

import pytest

from restpack.config import ClientSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep RESTPACK_* variables of the host from leaking into tests."""
    for name in (
        "RESTPACK_BASE_URL",
        "RESTPACK_TIMEOUT",
        "RESTPACK_USER_AGENT",
        "RESTPACK_HEADERS",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def text_file(tmp_path: Path) -> Path:
    """A small plain text file on disk."""
    path = tmp_path / "notes.txt"
    path.write_bytes(b"hello from disk\n")
    return path


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(base_url="http://api.test/v1")
