"""OAuth token storage for gro.

The token lives in the most secure store the host offers (OS keychain,
secret-tool, or an owner-only file). Refreshed tokens are written back as
soon as they appear, and a token left in the legacy plaintext file is
imported once and securely erased.
"""

from google_readonly.keychain.backends import (
    FileBackend,
    KeychainBackend,
    SecretToolBackend,
    StorageBackend,
    TokenBackend,
)
from google_readonly.keychain.erase import secure_delete
from google_readonly.keychain.migrate import migrate_from_file
from google_readonly.keychain.persistent import PersistentTokenSource, TokenSource
from google_readonly.keychain.selector import HostProbe, probe_host, select_backend
from google_readonly.keychain.store import TokenStore
from google_readonly.keychain.token import Token

__all__ = [
    "FileBackend",
    "HostProbe",
    "KeychainBackend",
    "PersistentTokenSource",
    "SecretToolBackend",
    "StorageBackend",
    "Token",
    "TokenBackend",
    "TokenSource",
    "TokenStore",
    "migrate_from_file",
    "probe_host",
    "secure_delete",
    "select_backend",
]
