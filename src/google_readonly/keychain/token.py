"""OAuth token data structure and its JSON encoding.

The on-disk format matches token.json written by earlier gro releases:

    {
      "access_token": "...",
      "refresh_token": "...",
      "token_type": "Bearer",
      "expiry": "2024-05-01T12:00:00Z"
    }

``expiry`` may be absent, null, empty or the zero timestamp
``0001-01-01T00:00:00Z``; all of these mean "unknown".
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

_ZERO_EXPIRY_PREFIX = "0001-01-01"


@dataclass
class Token:
    """OAuth2 credential persisted by gro.

    Attributes:
        access_token: Short-lived bearer token used for API calls.
        refresh_token: Long-lived token used to obtain new access tokens.
            Empty when the provider did not return one.
        token_type: Authorization scheme, normally "Bearer".
        expiry: Timezone-aware UTC expiry, or None if unknown.
    """

    access_token: str
    refresh_token: str = ""
    token_type: str = "Bearer"
    expiry: datetime | None = None

    def __repr__(self) -> str:
        return (
            f"Token(token_type={self.token_type!r}, expiry={self.expiry!r}, "
            f"has_refresh_token={bool(self.refresh_token)})"
        )

    def is_valid(self, buffer_seconds: int = 60) -> bool:
        """Check if the access token is usable with a safety buffer."""
        if not self.access_token:
            return False
        if self.expiry is None:
            return True
        return time.time() < self.expiry.timestamp() - buffer_seconds

    def expires_in_seconds(self) -> int:
        """Return seconds until the token expires (0 if expired or unknown)."""
        if self.expiry is None:
            return 0
        return max(0, int(self.expiry.timestamp() - time.time()))

    def merged_with(self, previous: Token | None) -> Token:
        """Return a copy that keeps previous's refresh token if this one has none.

        Refresh responses often omit refresh_token; dropping the stored one
        would orphan the session.
        """
        if self.refresh_token or previous is None or not previous.refresh_token:
            return self
        return replace(self, refresh_token=previous.refresh_token)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expiry": _format_expiry(self.expiry),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Token:
        """Create Token from dictionary. Unknown keys are ignored.

        Raises:
            KeyError: If access_token is missing.
            ValueError: If a field has the wrong type or expiry is malformed.
        """
        if not isinstance(data, dict):
            raise ValueError("token must be a JSON object")

        access_token = data["access_token"]
        refresh_token = data.get("refresh_token") or ""
        token_type = data.get("token_type") or "Bearer"
        for name, value in (
            ("access_token", access_token),
            ("refresh_token", refresh_token),
            ("token_type", token_type),
        ):
            if not isinstance(value, str):
                raise ValueError(f"{name} must be a string")

        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type=token_type,
            expiry=_parse_expiry(data.get("expiry")),
        )

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> Token:
        """Parse a JSON string produced by to_json (or an older gro release)."""
        return cls.from_dict(json.loads(text))


def _format_expiry(expiry: datetime | None) -> str | None:
    if expiry is None:
        return None
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=UTC)
    return expiry.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _parse_expiry(value: Any) -> datetime | None:
    if value is None or value == "" or value == 0:
        return None
    if not isinstance(value, str):
        raise ValueError("expiry must be an RFC 3339 string")
    if value.startswith(_ZERO_EXPIRY_PREFIX):
        return None

    text = value.replace("Z", "+00:00").replace("z", "+00:00")
    # Some writers emit nanoseconds; datetime only keeps microseconds
    if "." in text:
        head, _, rest = text.partition(".")
        digits = ""
        for ch in rest:
            if not ch.isdigit():
                break
            digits += ch
        text = f"{head}.{digits[:6]}{rest[len(digits):]}" if digits else head + rest

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
