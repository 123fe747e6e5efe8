"""TokenStore: the facade commands use to read and write the OAuth token.

A store wraps exactly one backend, chosen once when the store is opened.
Commands receive the store they should use instead of reaching for a
module-level instance, so tests can hand in a store built on a fake backend.

Example:
    store = TokenStore.open(Settings())
    if store.has_token():
        token = store.get_token()
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from google_readonly.config import get_config_dir
from google_readonly.errors import CorruptTokenError, TokenNotFoundError
from google_readonly.keychain.selector import (
    HostProbe,
    build_backend,
    probe_host,
    select_backend,
)

if TYPE_CHECKING:
    from google_readonly.config import Settings
    from google_readonly.keychain.backends import StorageBackend, TokenBackend
    from google_readonly.keychain.token import Token


class TokenStore:
    """Stores the single OAuth token in the backend chosen for this process."""

    def __init__(self, backend: TokenBackend) -> None:
        self._backend = backend

    @classmethod
    def open(
        cls,
        settings: Settings,
        config_dir: Path | None = None,
        probe: HostProbe | None = None,
    ) -> TokenStore:
        """Probe the host, select the most secure backend and wrap it.

        Args:
            settings: Process settings (GRO_TOKEN_BACKEND forces a backend).
            config_dir: Config directory for the file backend.
            probe: Precomputed probe results; probed now if omitted.
        """
        if not settings.token_backend and probe is None:
            probe = probe_host()
        kind = select_backend(probe or HostProbe(), settings.token_backend)
        backend = build_backend(kind, config_dir or get_config_dir(), settings)
        logger.debug("Token storage: {} ({})", kind, backend.describe())
        return cls(backend)

    @property
    def backend(self) -> TokenBackend:
        return self._backend

    @property
    def current_backend(self) -> StorageBackend:
        return self._backend.kind

    def get(self) -> Token:
        """Return the stored token.

        Raises:
            TokenNotFoundError: No token stored.
            CorruptTokenError: Stored token does not parse.
            BackendUnavailableError: The secret store failed the call.
        """
        return self._backend.get()

    def set(self, token: Token) -> None:
        """Store token, fully replacing the previous one."""
        self._backend.set(token)

    def delete(self) -> None:
        """Remove the stored token. Deleting nothing is not an error."""
        self._backend.delete()

    # CLI-facing names

    def has_token(self) -> bool:
        """True if a token is stored.

        A stored token that fails to parse still counts; ``get_token`` will
        report the damage. Backend failures propagate.
        """
        try:
            self._backend.get()
        except TokenNotFoundError:
            return False
        except CorruptTokenError:
            return True
        return True

    def get_token(self) -> Token:
        return self.get()

    def delete_token(self) -> None:
        self.delete()

    def active_backend(self) -> StorageBackend:
        return self.current_backend

    def is_secure_storage(self) -> bool:
        """True if the active backend is a native platform store."""
        return self.current_backend.is_secure

