"""Authenticated HTTP clients for Google APIs.

The OAuth client config comes from ``credentials.json`` (downloaded from the
Google Cloud console); the user token comes from the ``TokenStore``. Each
request asks a ``PersistentTokenSource`` for a token, so a refresh that
happens mid-command is saved before the request is sent.

Example:
    store = TokenStore.open(Settings())
    with get_http_client(store) as client:
        resp = client.get("https://gmail.googleapis.com/gmail/v1/users/me/profile")
"""

from __future__ import annotations

import json
import ssl
from collections.abc import Generator
from dataclasses import dataclass
from datetime import UTC
from pathlib import Path
from typing import TYPE_CHECKING

import certifi
import httpx
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from loguru import logger

from google_readonly.config import get_credentials_path, shorten_path
from google_readonly.errors import SystemFailure, TokenNotFoundError, UserError
from google_readonly.keychain.persistent import PersistentTokenSource
from google_readonly.keychain.token import Token

if TYPE_CHECKING:
    from google_readonly.keychain.persistent import TokenSource
    from google_readonly.keychain.store import TokenStore

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_TIMEOUT = 60

# All OAuth scopes used by gro (read-only)
ALL_SCOPES = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/contacts.readonly",
    "https://www.googleapis.com/auth/drive.readonly",
]


@dataclass(frozen=True)
class OAuthClientConfig:
    """OAuth client identity from credentials.json."""

    client_id: str
    client_secret: str
    token_uri: str = GOOGLE_TOKEN_URI


def load_client_config(path: Path | None = None) -> OAuthClientConfig:
    """Read the OAuth client config from credentials.json.

    Accepts both the "installed" (desktop app) and "web" layouts.

    Raises:
        UserError: If the file is missing or not a valid client config.
    """
    path = path or get_credentials_path()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise UserError(
            f"Credentials file not found at {shorten_path(path)}. "
            "Download OAuth client credentials (Desktop app) from the Google Cloud "
            "console and save them there."
        ) from None
    except (OSError, json.JSONDecodeError) as e:
        raise UserError(f"Unable to read credentials file {shorten_path(path)}: {e}") from e

    section = data.get("installed") or data.get("web") if isinstance(data, dict) else None
    if not isinstance(section, dict) or not section.get("client_id"):
        raise UserError(
            f"Credentials file {shorten_path(path)} is not an OAuth client config "
            "(expected an 'installed' or 'web' section with client_id)"
        )

    return OAuthClientConfig(
        client_id=section["client_id"],
        client_secret=section.get("client_secret", ""),
        token_uri=section.get("token_uri") or GOOGLE_TOKEN_URI,
    )


class GoogleTokenSource:
    """Provider token source backed by google-auth.

    Returns the current token while it is valid and refreshes it through the
    token endpoint otherwise.
    """

    def __init__(self, token: Token, client: OAuthClientConfig) -> None:
        expiry = token.expiry.astimezone(UTC).replace(tzinfo=None) if token.expiry else None
        # google-auth expects naive UTC datetimes
        self._credentials = Credentials(
            token=token.access_token,
            refresh_token=token.refresh_token or None,
            token_uri=client.token_uri,
            client_id=client.client_id,
            client_secret=client.client_secret,
            scopes=ALL_SCOPES,
            expiry=expiry,
        )
        self._token_type = token.token_type or "Bearer"

    def token(self) -> Token:
        creds = self._credentials
        if not creds.valid:
            if not creds.refresh_token:
                raise UserError("OAuth token expired and has no refresh token; run 'gro init'")
            logger.debug("Access token expired, refreshing")
            try:
                creds.refresh(Request())
            except RefreshError as e:
                raise SystemFailure(
                    "Token refresh rejected; run 'gro config clear' then 'gro init'", e
                ) from e
            except TransportError as e:
                raise SystemFailure("Token refresh failed", e, retryable=True) from e

        return Token(
            access_token=creds.token,
            refresh_token=creds.refresh_token or "",
            token_type=self._token_type,
            expiry=creds.expiry.replace(tzinfo=UTC) if creds.expiry else None,
        )


class BearerAuth(httpx.Auth):
    """httpx auth that fetches a token from a token source for every request."""

    def __init__(self, source: TokenSource) -> None:
        self._source = source

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._source.token()
        request.headers["Authorization"] = f"{token.token_type or 'Bearer'} {token.access_token}"
        yield request


def get_http_client(
    store: TokenStore,
    credentials_path: Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> httpx.Client:
    """Return an httpx client that authenticates with the stored token.

    Refreshed tokens are saved back to store before the request that
    triggered the refresh is sent.

    Raises:
        UserError: If credentials.json or the token is missing.
    """
    client_config = load_client_config(credentials_path)

    try:
        token = store.get()
    except TokenNotFoundError as e:
        raise UserError("No OAuth token found - please run 'gro init' first") from e

    source = PersistentTokenSource(GoogleTokenSource(token, client_config), store, current=token)
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    return httpx.Client(auth=BearerAuth(source), verify=ssl_context, timeout=timeout)
