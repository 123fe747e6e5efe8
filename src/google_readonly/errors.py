"""Error types for the gro CLI.

Two families:

- ``UserError`` / ``SystemFailure`` separate problems the user can fix
  (missing credentials file, bad setting) from host or API failures that may
  be temporary.
- ``TokenStoreError`` and its subclasses describe what went wrong while
  reading, writing or erasing the stored OAuth token.

Messages carry a path or backend name so the CLI can print something useful,
but never the token itself.
"""

from __future__ import annotations

from pathlib import Path


class GroError(Exception):
    """Base exception for all gro errors."""


class UserError(GroError):
    """Raised for errors the user can fix (bad input, missing setup)."""


class SystemFailure(GroError):
    """Raised for host or API failures.

    Attributes:
        cause: The underlying exception, if any.
        retryable: Whether repeating the operation may succeed.
    """

    def __init__(
        self, message: str, cause: BaseException | None = None, retryable: bool = False
    ) -> None:
        self.message = message
        self.cause = cause
        self.retryable = retryable
        super().__init__(f"{message}: {cause}" if cause is not None else message)


def is_retryable(exc: BaseException) -> bool:
    """Return True if exc is a SystemFailure marked retryable."""
    return isinstance(exc, SystemFailure) and exc.retryable


class TokenStoreError(GroError):
    """Base exception for token storage errors."""


class TokenNotFoundError(TokenStoreError):
    """Raised when no token has been stored yet.

    Recoverable: the user needs to run ``gro init``.
    """

    def __init__(self, location: str | Path | None = None) -> None:
        self.location = str(location) if location is not None else None
        message = "No OAuth token found"
        if self.location:
            message += f" in {self.location}"
        super().__init__(message)


class CorruptTokenError(TokenStoreError):
    """Raised when a stored token exists but cannot be parsed.

    The token is never discarded automatically; the user's only credential
    may live there.
    """

    def __init__(self, location: str | Path, reason: str) -> None:
        self.location = str(location)
        self.reason = reason
        super().__init__(f"Failed to parse token in {self.location}: {reason}")


class BackendUnavailableError(TokenStoreError):
    """Raised when the selected secret store fails a call."""

    def __init__(self, backend: str, reason: str) -> None:
        self.backend = backend
        self.reason = reason
        super().__init__(f"{backend} storage unavailable: {reason}")


class TokenIOError(TokenStoreError):
    """Raised when writing or erasing a token file fails."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Token file error at {self.path}: {reason}")
