"""Unit tests for secure_delete."""

import os
from pathlib import Path
from unittest import mock

import pytest

from google_readonly.errors import TokenIOError
from google_readonly.keychain.erase import secure_delete


class TestSecureDelete:
    """Tests for zero-overwrite-then-unlink."""

    def test_removes_file(self, tmp_path: Path) -> None:
        path = tmp_path / "token.json"
        path.write_text('{"access_token": "a1"}')

        secure_delete(path)

        assert not path.exists()

    def test_missing_file_is_noop(self, tmp_path: Path) -> None:
        """Erasing a file that does not exist succeeds silently."""
        secure_delete(tmp_path / "missing.json")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.json"
        path.touch()

        secure_delete(path)

        assert not path.exists()

    def test_overwrites_with_zeros_before_unlink(self, tmp_path: Path) -> None:
        """Content is zeroed and synced before the file is removed."""
        path = tmp_path / "token.json"
        secret = b"x" * 100_000
        path.write_bytes(secret)
        seen: dict[str, bytes] = {}

        real_unlink = Path.unlink

        def capture_then_unlink(self: Path, missing_ok: bool = False) -> None:
            seen["content"] = self.read_bytes()
            real_unlink(self, missing_ok=missing_ok)

        with (
            mock.patch.object(Path, "unlink", capture_then_unlink),
            mock.patch("os.fsync", wraps=os.fsync) as fsync,
        ):
            secure_delete(path)

        assert seen["content"] == bytes(len(secret))
        fsync.assert_called_once()
        assert not path.exists()

    def test_unlink_failure_raises_io_error(self, tmp_path: Path) -> None:
        path = tmp_path / "token.json"
        path.write_text("secret")

        with (
            mock.patch.object(Path, "unlink", side_effect=PermissionError(13, "denied")),
            pytest.raises(TokenIOError, match="unlink failed"),
        ):
            secure_delete(path)

    def test_open_failure_raises_io_error(self, tmp_path: Path) -> None:
        path = tmp_path / "token.json"
        path.write_text("secret")

        with (
            mock.patch("os.open", side_effect=PermissionError(13, "denied")),
            pytest.raises(TokenIOError, match="cannot open"),
        ):
            secure_delete(path)
