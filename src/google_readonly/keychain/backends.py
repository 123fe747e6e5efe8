"""Token storage backends.

All backends implement the same contract (``TokenBackend``):

- FileBackend: token.json under the config dir, owner-only permissions.
  Works everywhere; the fallback.
- KeychainBackend: OS keychain through the ``keyring`` library (macOS
  Keychain, Windows Credential Locker, Secret Service).
- SecretToolBackend: libsecret's ``secret-tool`` helper, for Linux desktops
  where keyring has no usable native backend.

Backends do no host probing; see ``selector`` for that.
"""

from __future__ import annotations

import json
import os
import subprocess
import tempfile
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

import keyring
import keyring.errors
from loguru import logger

from google_readonly.config import DIR_PERM, TOKEN_PERM, shorten_path
from google_readonly.errors import (
    BackendUnavailableError,
    CorruptTokenError,
    TokenIOError,
    TokenNotFoundError,
)
from google_readonly.keychain.erase import secure_delete
from google_readonly.keychain.token import Token

DEFAULT_ACCOUNT = "oauth_token"
SECRET_TOOL_LABEL = "google-readonly OAuth token"


class StorageBackend(str, Enum):
    """Where the OAuth token is stored."""

    KEYCHAIN = "Keychain"
    SECRET_TOOL = "secret-tool"
    FILE = "config file"

    def __str__(self) -> str:
        return self.value

    @property
    def is_secure(self) -> bool:
        """True for native platform stores, False for the plaintext file."""
        return self is not StorageBackend.FILE


class TokenBackend(ABC):
    """Abstract base class for token storage.

    ``get`` raises TokenNotFoundError when nothing is stored, ``delete`` is
    idempotent and ``set`` fully replaces any previous value.
    """

    kind: StorageBackend

    @property
    def is_secure(self) -> bool:
        return self.kind.is_secure

    @abstractmethod
    def get(self) -> Token:
        """Return the stored token.

        Raises:
            TokenNotFoundError: Nothing is stored.
            CorruptTokenError: Something is stored but does not parse.
        """
        ...

    @abstractmethod
    def set(self, token: Token) -> None:
        """Store token, replacing any previous value."""
        ...

    @abstractmethod
    def delete(self) -> None:
        """Remove the stored token. Succeeds if nothing is stored."""
        ...

    def describe(self) -> str:
        """Human-readable location for messages."""
        return str(self.kind)


def parse_token(text: str, location: str) -> Token:
    """Parse stored JSON, turning any format problem into CorruptTokenError."""
    try:
        return Token.from_json(text)
    except json.JSONDecodeError as e:
        raise CorruptTokenError(location, f"invalid JSON at line {e.lineno}") from e
    except KeyError as e:
        raise CorruptTokenError(location, f"missing field {e}") from e
    except ValueError as e:
        raise CorruptTokenError(location, str(e)) from e


class FileBackend(TokenBackend):
    """Token stored as JSON in a file readable only by its owner."""

    kind = StorageBackend.FILE

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def describe(self) -> str:
        return shorten_path(self._path)

    def get(self) -> Token:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise TokenNotFoundError(self.describe()) from None
        except UnicodeDecodeError as e:
            raise CorruptTokenError(self.describe(), "not UTF-8 text") from e
        except OSError as e:
            raise TokenIOError(self.describe(), f"read failed: {e.strerror}") from e
        return parse_token(text, self.describe())

    def set(self, token: Token) -> None:
        """Write the token atomically.

        The JSON goes to a 0600 temp file in the same directory which is then
        renamed over token.json, so a crash never leaves a half-written file.
        """
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True, mode=DIR_PERM)
            directory.chmod(DIR_PERM)
        except OSError as e:
            raise TokenIOError(shorten_path(directory), f"cannot create: {e.strerror}") from e

        try:
            fd, temp_name = tempfile.mkstemp(dir=directory, prefix=".token-", suffix=".tmp")
        except OSError as e:
            raise TokenIOError(self.describe(), f"cannot create temp file: {e.strerror}") from e

        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(token.to_json())
                f.flush()
                os.fsync(f.fileno())
            temp_path.chmod(TOKEN_PERM)
            os.replace(temp_path, self._path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise TokenIOError(self.describe(), f"write failed: {e.strerror}") from e

        logger.debug("Token written to {}", self.describe())

    def delete(self) -> None:
        secure_delete(self._path)


class KeychainBackend(TokenBackend):
    """Token stored in the OS keychain through the keyring library."""

    kind = StorageBackend.KEYCHAIN

    def __init__(self, service: str, account: str = DEFAULT_ACCOUNT) -> None:
        self._service = service
        self._account = account

    def describe(self) -> str:
        return f"keychain:{self._service}/{self._account}"

    def get(self) -> Token:
        try:
            token_json = keyring.get_password(self._service, self._account)
        except keyring.errors.KeyringError as e:
            raise BackendUnavailableError(str(self.kind), str(e)) from e
        if not token_json:
            raise TokenNotFoundError(self.describe())
        return parse_token(token_json, self.describe())

    def set(self, token: Token) -> None:
        try:
            keyring.set_password(self._service, self._account, token.to_json(indent=None))
        except keyring.errors.KeyringError as e:
            raise BackendUnavailableError(str(self.kind), str(e)) from e
        logger.debug("Token written to {}", self.describe())

    def delete(self) -> None:
        try:
            keyring.delete_password(self._service, self._account)
        except keyring.errors.PasswordDeleteError:
            # Nothing stored under this service/account
            return
        except keyring.errors.KeyringError as e:
            raise BackendUnavailableError(str(self.kind), str(e)) from e


class SecretToolBackend(TokenBackend):
    """Token stored through libsecret's secret-tool command.

    The secret is always passed on stdin, never as an argument.
    """

    kind = StorageBackend.SECRET_TOOL

    def __init__(
        self,
        service: str,
        account: str = DEFAULT_ACCOUNT,
        timeout: float = 5.0,
        executable: str = "secret-tool",
    ) -> None:
        self._service = service
        self._account = account
        self._timeout = timeout
        self._executable = executable

    def describe(self) -> str:
        return f"secret-tool:{self._service}/{self._account}"

    @property
    def _attributes(self) -> list[str]:
        return ["service", self._service, "account", self._account]

    def _run(self, args: list[str], stdin: str | None = None) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                [self._executable, *args],
                input=stdin,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise BackendUnavailableError(str(self.kind), f"{self._executable} not found") from e
        except subprocess.TimeoutExpired as e:
            raise BackendUnavailableError(
                str(self.kind), f"{args[0]} timed out after {self._timeout:g}s"
            ) from e

    @staticmethod
    def _stderr(result: subprocess.CompletedProcess[str]) -> str:
        return (result.stderr or "").strip() or f"exit status {result.returncode}"

    def get(self) -> Token:
        result = self._run(["lookup", *self._attributes])
        output = (result.stdout or "").rstrip("\n")
        if result.returncode != 0:
            # lookup exits 1 without output when no item matches
            if result.returncode == 1 and not output and not (result.stderr or "").strip():
                raise TokenNotFoundError(self.describe())
            raise BackendUnavailableError(str(self.kind), self._stderr(result))
        if not output:
            raise TokenNotFoundError(self.describe())
        return parse_token(output, self.describe())

    def set(self, token: Token) -> None:
        result = self._run(
            ["store", f"--label={SECRET_TOOL_LABEL}", *self._attributes],
            stdin=token.to_json(indent=None),
        )
        if result.returncode != 0:
            raise BackendUnavailableError(str(self.kind), self._stderr(result))
        logger.debug("Token written to {}", self.describe())

    def delete(self) -> None:
        result = self._run(["clear", *self._attributes])
        if result.returncode != 0:
            raise BackendUnavailableError(str(self.kind), self._stderr(result))
