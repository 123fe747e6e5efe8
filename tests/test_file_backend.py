"""Unit tests for FileBackend."""

import json
import os
import stat
from pathlib import Path
from unittest import mock

import pytest

from google_readonly.errors import CorruptTokenError, TokenIOError, TokenNotFoundError
from google_readonly.keychain.backends import FileBackend, StorageBackend
from google_readonly.keychain.token import Token


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


class TestFileBackend:
    """Tests for the owner-only token file."""

    def test_kind_is_not_secure(self, tmp_path: Path) -> None:
        backend = FileBackend(tmp_path / "token.json")
        assert backend.kind is StorageBackend.FILE
        assert backend.is_secure is False

    def test_get_missing_file(self, tmp_path: Path) -> None:
        """No file means no token, not an error."""
        with pytest.raises(TokenNotFoundError):
            FileBackend(tmp_path / "token.json").get()

    def test_set_then_get(self, tmp_path: Path, token: Token) -> None:
        backend = FileBackend(tmp_path / "token.json")
        backend.set(token)
        assert backend.get() == token

    def test_set_creates_dir_and_file_with_owner_only_perms(
        self, tmp_path: Path, token: Token
    ) -> None:
        """Directory is 0700 and the token file is 0600."""
        path = tmp_path / "google-readonly" / "token.json"
        FileBackend(path).set(token)

        assert _mode(path.parent) == 0o700
        assert _mode(path) == 0o600

    def test_set_tightens_existing_dir(self, tmp_path: Path, token: Token) -> None:
        directory = tmp_path / "google-readonly"
        directory.mkdir(mode=0o755)
        os.chmod(directory, 0o755)

        FileBackend(directory / "token.json").set(token)

        assert _mode(directory) == 0o700

    def test_set_writes_legacy_format(self, tmp_path: Path, token: Token) -> None:
        """The file is indented JSON with the fields older releases wrote."""
        path = tmp_path / "token.json"
        FileBackend(path).set(token)

        data = json.loads(path.read_text())
        assert set(data) == {"access_token", "refresh_token", "token_type", "expiry"}
        assert data["access_token"] == "a1"
        assert data["expiry"].endswith("Z")

    def test_set_replaces_previous_token(self, tmp_path: Path, token: Token) -> None:
        backend = FileBackend(tmp_path / "token.json")
        backend.set(token)
        backend.set(Token(access_token="a2"))

        assert backend.get() == Token(access_token="a2")

    def test_set_leaves_no_temp_files(self, tmp_path: Path, token: Token) -> None:
        backend = FileBackend(tmp_path / "token.json")
        backend.set(token)
        backend.set(token)

        assert [p.name for p in tmp_path.iterdir()] == ["token.json"]

    def test_failed_write_keeps_old_token_and_cleans_up(
        self, tmp_path: Path, token: Token
    ) -> None:
        """A failed rename leaves the previous file intact and no temp file."""
        path = tmp_path / "token.json"
        backend = FileBackend(path)
        backend.set(token)

        with (
            mock.patch("os.replace", side_effect=OSError(28, "No space left on device")),
            pytest.raises(TokenIOError, match="write failed"),
        ):
            backend.set(Token(access_token="a2"))

        assert backend.get() == token
        assert [p.name for p in tmp_path.iterdir()] == ["token.json"]

    def test_get_invalid_json(self, tmp_path: Path) -> None:
        """Garbage in the file is reported, never treated as 'no token'."""
        path = tmp_path / "token.json"
        path.write_text("{not json")

        with pytest.raises(CorruptTokenError, match="invalid JSON"):
            FileBackend(path).get()

        assert path.exists()

    def test_get_missing_access_token(self, tmp_path: Path) -> None:
        path = tmp_path / "token.json"
        path.write_text('{"refresh_token": "r1"}')

        with pytest.raises(CorruptTokenError, match="missing field"):
            FileBackend(path).get()

    def test_get_binary_garbage(self, tmp_path: Path) -> None:
        path = tmp_path / "token.json"
        path.write_bytes(b"\xff\xfe\x00garbage")

        with pytest.raises(CorruptTokenError):
            FileBackend(path).get()

    def test_delete_removes_file(self, tmp_path: Path, token: Token) -> None:
        path = tmp_path / "token.json"
        backend = FileBackend(path)
        backend.set(token)

        backend.delete()

        assert not path.exists()
        with pytest.raises(TokenNotFoundError):
            backend.get()

    def test_delete_is_idempotent(self, tmp_path: Path) -> None:
        backend = FileBackend(tmp_path / "token.json")
        backend.delete()
        backend.delete()
