"""One-time import of the legacy plaintext token file.

Earlier gro releases kept the token only in ``<config-dir>/token.json``.
When a secure backend is selected and holds nothing yet, the file is
imported into it and then securely erased. The only signals are the legacy
path and "the store is empty"; there is no migration marker.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from google_readonly.config import shorten_path
from google_readonly.errors import CorruptTokenError, TokenIOError, TokenNotFoundError
from google_readonly.keychain.backends import FileBackend, parse_token
from google_readonly.keychain.erase import secure_delete

if TYPE_CHECKING:
    from google_readonly.keychain.store import TokenStore
    from google_readonly.keychain.token import Token


def migrate_from_file(store: TokenStore, legacy_path: str | Path) -> bool:
    """Move a token from the legacy file into store.

    Does nothing if the store already holds a token (so a fresh login is
    never clobbered by stale data) or if there is no legacy file.

    Returns:
        True if a token was imported.

    Raises:
        CorruptTokenError: The legacy file (or the store) exists but does not
            parse. The legacy file is left in place.
        TokenIOError: The legacy file cannot be read or erased.
    """
    legacy_path = Path(legacy_path)

    # With file storage the legacy file is the store itself
    backend = store.backend
    if isinstance(backend, FileBackend) and _same_file(backend.path, legacy_path):
        return False

    try:
        store.get()
        logger.debug("Token already in {}; skipping migration", store.current_backend)
        return False
    except TokenNotFoundError:
        pass

    token = _read_legacy(legacy_path)
    if token is None:
        return False

    store.set(token)
    secure_delete(legacy_path)
    logger.info(
        "Migrated OAuth token from {} to {}", shorten_path(legacy_path), store.current_backend
    )
    return True


def _read_legacy(path: Path) -> Token | None:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except UnicodeDecodeError as e:
        raise CorruptTokenError(shorten_path(path), "not UTF-8 text") from e
    except OSError as e:
        raise TokenIOError(shorten_path(path), f"read failed: {e.strerror}") from e

    return parse_token(text, shorten_path(path))


def _same_file(a: Path, b: Path) -> bool:
    try:
        return a.resolve() == b.resolve()
    except OSError:
        return a == b
