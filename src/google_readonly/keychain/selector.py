"""Pick the most secure token backend available on this host.

Selection is split in two so each half is testable on its own:

- ``probe_host()`` has all the side effects: it asks keyring which backend
  it would use and checks whether secret-tool and its daemon respond.
- ``select_backend()`` is a pure function from probe results to a
  ``StorageBackend``: keychain, then secret-tool, then the config file.

Probing happens once per process. A probe that raises counts as "not
usable"; the file backend is always usable.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import keyring
from loguru import logger

from google_readonly.config import TOKEN_FILE
from google_readonly.errors import UserError
from google_readonly.keychain.backends import (
    FileBackend,
    KeychainBackend,
    SecretToolBackend,
    StorageBackend,
    TokenBackend,
)

if TYPE_CHECKING:
    from google_readonly.config import Settings

# Values accepted by GRO_TOKEN_BACKEND
BACKEND_NAMES = {
    "keychain": StorageBackend.KEYCHAIN,
    "secret-tool": StorageBackend.SECRET_TOOL,
    "file": StorageBackend.FILE,
}

SELECTION_ORDER = (
    StorageBackend.KEYCHAIN,
    StorageBackend.SECRET_TOOL,
    StorageBackend.FILE,
)


@dataclass(frozen=True)
class HostProbe:
    """What the host offers for secret storage."""

    keyring_usable: bool = False
    secret_tool_usable: bool = False

    def usable(self, kind: StorageBackend) -> bool:
        if kind is StorageBackend.KEYCHAIN:
            return self.keyring_usable
        if kind is StorageBackend.SECRET_TOOL:
            return self.secret_tool_usable
        return True


def select_backend(probe: HostProbe, forced: str = "") -> StorageBackend:
    """Choose a backend from probe results.

    Args:
        probe: Results of probe_host().
        forced: Optional GRO_TOKEN_BACKEND value overriding the probe.

    Raises:
        UserError: If forced names an unknown backend.
    """
    if forced:
        try:
            return BACKEND_NAMES[forced.lower()]
        except KeyError:
            valid = ", ".join(BACKEND_NAMES)
            raise UserError(
                f"Unknown token backend '{forced}' in GRO_TOKEN_BACKEND. Valid values: {valid}"
            ) from None

    for kind in SELECTION_ORDER:
        if probe.usable(kind):
            return kind
    # Unreachable: the file backend is always usable
    return StorageBackend.FILE


def build_backend(kind: StorageBackend, config_dir: Path, settings: Settings) -> TokenBackend:
    """Construct the backend for kind."""
    if kind is StorageBackend.KEYCHAIN:
        return KeychainBackend(settings.keyring_service)
    if kind is StorageBackend.SECRET_TOOL:
        return SecretToolBackend(settings.keyring_service, timeout=settings.secret_tool_timeout)
    return FileBackend(config_dir / TOKEN_FILE)


def probe_host(timeout: float = 2.0) -> HostProbe:
    """Check which native secret stores are reachable right now."""
    probe = HostProbe(
        keyring_usable=_keyring_usable(),
        secret_tool_usable=_secret_tool_usable(timeout),
    )
    logger.debug(
        "Storage probe: keyring={}, secret-tool={}",
        probe.keyring_usable,
        probe.secret_tool_usable,
    )
    return probe


def _keyring_usable() -> bool:
    """True if keyring resolves to a native, non-plaintext backend."""
    try:
        backend = keyring.get_keyring()
        members = getattr(backend, "backends", None)
        candidates = list(members) if members is not None else [backend]
        native = [b for b in candidates if _is_native_keyring(b)]
        if native:
            logger.debug("keyring backend: {}", type(native[0]).__qualname__)
        return bool(native)
    except Exception as e:
        logger.debug("keyring probe failed: {}", e)
        return False


def _is_native_keyring(backend: object) -> bool:
    module = type(backend).__module__
    if module.startswith("keyrings.alt") or module in (
        "keyring.backends.fail",
        "keyring.backends.null",
        "keyring.backends.chainer",
    ):
        return False
    try:
        priority = float(getattr(backend, "priority", 0))
    except Exception:
        return False
    return priority >= 1


def _secret_tool_usable(timeout: float) -> bool:
    """True if secret-tool is installed and the secret service answers."""
    if not sys.platform.startswith("linux"):
        return False
    executable = shutil.which("secret-tool")
    if not executable:
        return False
    if not os.environ.get("DBUS_SESSION_BUS_ADDRESS"):
        logger.debug("secret-tool found but no D-Bus session bus")
        return False
    try:
        result = subprocess.run(
            [executable, "search", "service", "google-readonly-probe"],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("secret-tool probe failed: {}", e)
        return False
    # An empty search exits 0 or 1 quietly; a missing daemon or locked
    # collection writes to stderr
    return result.returncode in (0, 1) and not (result.stderr or "").strip()
