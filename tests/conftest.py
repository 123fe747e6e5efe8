"""Shared test fixtures for google-readonly.

Every test runs with its own config directory and the file backend forced,
so nothing reads or writes the developer's real keychain or token.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from loguru import logger

from google_readonly.keychain.token import Token


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_CONFIG_HOME at a temp dir and force file storage."""
    config_home = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setenv("GRO_TOKEN_BACKEND", "file")
    monkeypatch.delenv("GRO_LOG_LEVEL", raising=False)
    return config_home / "google-readonly"


@pytest.fixture
def token() -> Token:
    """A token valid for one hour."""
    return Token(
        access_token="a1",
        refresh_token="r1",
        token_type="Bearer",
        expiry=(datetime.now(UTC) + timedelta(hours=1)).replace(microsecond=0),
    )


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Drop loguru sinks added by the CLI so they don't outlive capsys."""
    yield
    logger.remove()
