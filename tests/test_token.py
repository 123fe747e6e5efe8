"""Unit tests for the Token dataclass."""

import json
import time
from datetime import UTC, datetime, timedelta

import pytest

from google_readonly.keychain.token import Token


class TestTokenValidity:
    """Tests for is_valid and expires_in_seconds."""

    def test_is_valid_with_future_expiry(self) -> None:
        """Token with future expiry is valid."""
        token = Token(access_token="a", expiry=datetime.now(UTC) + timedelta(hours=1))
        assert token.is_valid() is True

    def test_is_valid_with_past_expiry(self) -> None:
        """Token with past expiry is invalid."""
        token = Token(access_token="a", expiry=datetime.now(UTC) - timedelta(seconds=100))
        assert token.is_valid() is False

    def test_is_valid_respects_buffer(self) -> None:
        """Token expiring within the buffer is invalid."""
        token = Token(access_token="a", expiry=datetime.now(UTC) + timedelta(seconds=30))
        assert token.is_valid(buffer_seconds=60) is False
        assert token.is_valid(buffer_seconds=10) is True

    def test_unknown_expiry_is_valid(self) -> None:
        """A token without expiry is treated as valid."""
        assert Token(access_token="a").is_valid() is True

    def test_empty_access_token_is_invalid(self) -> None:
        assert Token(access_token="").is_valid() is False

    def test_expires_in_seconds(self) -> None:
        """expires_in_seconds is close to the remaining lifetime."""
        token = Token(access_token="a", expiry=datetime.fromtimestamp(time.time() + 3600, UTC))
        assert 3598 <= token.expires_in_seconds() <= 3600

    def test_expires_in_seconds_when_expired_or_unknown(self) -> None:
        expired = Token(access_token="a", expiry=datetime.now(UTC) - timedelta(minutes=1))
        assert expired.expires_in_seconds() == 0
        assert Token(access_token="a").expires_in_seconds() == 0


class TestTokenMerge:
    """Tests for merged_with (refresh token carry-over)."""

    def test_keeps_previous_refresh_token_when_missing(self) -> None:
        previous = Token(access_token="a1", refresh_token="r1")
        merged = Token(access_token="a2").merged_with(previous)
        assert merged.access_token == "a2"
        assert merged.refresh_token == "r1"

    def test_new_refresh_token_wins(self) -> None:
        previous = Token(access_token="a1", refresh_token="r1")
        merged = Token(access_token="a2", refresh_token="r2").merged_with(previous)
        assert merged.refresh_token == "r2"

    def test_no_previous(self) -> None:
        token = Token(access_token="a2")
        assert token.merged_with(None) is token


class TestTokenSerialization:
    """Tests for the JSON format shared with older token.json files."""

    def test_to_dict(self) -> None:
        token = Token(
            access_token="a1",
            refresh_token="r1",
            expiry=datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
        )
        assert token.to_dict() == {
            "access_token": "a1",
            "refresh_token": "r1",
            "token_type": "Bearer",
            "expiry": "2024-05-01T12:00:00Z",
        }

    def test_to_dict_without_expiry(self) -> None:
        assert Token(access_token="a1").to_dict()["expiry"] is None

    def test_roundtrip(self, token: Token) -> None:
        """Token survives to_json then from_json."""
        assert Token.from_json(token.to_json()) == token

    def test_compact_json(self, token: Token) -> None:
        """indent=None produces single-line JSON for secret stores."""
        assert "\n" not in token.to_json(indent=None)

    def test_from_dict_ignores_unknown_keys(self) -> None:
        token = Token.from_dict({"access_token": "a1", "scope": "x", "id_token": "y"})
        assert token.access_token == "a1"
        assert token.token_type == "Bearer"
        assert token.refresh_token == ""

    def test_from_dict_missing_access_token(self) -> None:
        with pytest.raises(KeyError):
            Token.from_dict({"refresh_token": "r1"})

    def test_from_dict_wrong_type(self) -> None:
        with pytest.raises(ValueError):
            Token.from_dict({"access_token": 42})

    def test_from_json_not_an_object(self) -> None:
        with pytest.raises(ValueError):
            Token.from_json("[1, 2]")

    @pytest.mark.parametrize("expiry", [None, "", "0001-01-01T00:00:00Z"])
    def test_zero_expiry_means_unknown(self, expiry: str | None) -> None:
        token = Token.from_dict({"access_token": "a1", "expiry": expiry})
        assert token.expiry is None

    def test_parses_offset_and_nanoseconds(self) -> None:
        """Expiry with nanoseconds and a local offset is normalised to UTC."""
        token = Token.from_dict(
            {"access_token": "a1", "expiry": "2024-05-01T14:00:00.123456789+02:00"}
        )
        assert token.expiry == datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=UTC)

    def test_malformed_expiry(self) -> None:
        with pytest.raises(ValueError):
            Token.from_dict({"access_token": "a1", "expiry": "tomorrow"})

    def test_repr_hides_secrets(self) -> None:
        """repr never includes token values."""
        token = Token(access_token="secret-access", refresh_token="secret-refresh")
        text = repr(token)
        assert "secret-access" not in text
        assert "secret-refresh" not in text
        assert "has_refresh_token=True" in text

    def test_json_is_parseable(self, token: Token) -> None:
        assert json.loads(token.to_json())["access_token"] == "a1"
