"""google-readonly - read-only CLI for Google services.

This package holds the parts of ``gro`` that manage its OAuth token: where
it is stored (OS keychain, secret-tool or an owner-only file), how refreshed
tokens are saved, and the one-time import of the legacy plaintext token file.

Example:
    from google_readonly import Settings, TokenStore, get_http_client

    store = TokenStore.open(Settings())
    with get_http_client(store) as client:
        client.get("https://gmail.googleapis.com/gmail/v1/users/me/profile")
"""

from google_readonly.auth import get_http_client
from google_readonly.config import Settings
from google_readonly.keychain import StorageBackend, Token, TokenStore

__version__ = "0.3.0"
__all__ = [
    "Settings",
    "StorageBackend",
    "Token",
    "TokenStore",
    "get_http_client",
]
