"""Token source wrapper that saves refreshed tokens.

Google refreshes the access token inside whatever HTTP call happens to need
it. Without this wrapper the new token would be used until the process
exits and then lost, so the next ``gro`` run would refresh again (or, once
the refresh token rotates, need a full re-authentication).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from loguru import logger

if TYPE_CHECKING:
    from google_readonly.keychain.store import TokenStore
    from google_readonly.keychain.token import Token


class TokenSource(Protocol):
    """Anything that can hand out a current token."""

    def token(self) -> Token: ...


class PersistentTokenSource:
    """Wraps a token source and persists the token whenever it changes.

    Change detection compares access tokens only. When the upstream token
    has no refresh token (refresh responses usually omit it), the last known
    refresh token is carried over before saving.

    Args:
        base: The provider token source (may refresh over the network).
        store: Where changed tokens are saved.
        current: The token loaded at startup, if any.
    """

    def __init__(self, base: TokenSource, store: TokenStore, current: Token | None = None) -> None:
        self._base = base
        self._store = store
        self._current = current

    @property
    def current(self) -> Token | None:
        """The last token saved or loaded (with any carried-over refresh token)."""
        return self._current

    def token(self) -> Token:
        """Return a valid token, saving it first if it changed.

        Errors from the base source propagate unchanged and nothing is saved.
        A failed save also propagates: the caller must know the refreshed
        token may be lost.
        """
        token = self._base.token()

        if self._current is not None and token.access_token == self._current.access_token:
            return token

        persisted = token.merged_with(self._current)
        self._store.set(persisted)
        self._current = persisted
        logger.debug("Refreshed token saved to {}", self._store.current_backend)
        return token
