"""Session token and password hashing units."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from oceo.auth.jwt import create_session_token, verify_session_token
from oceo.auth.password import (
    PasswordStrengthError,
    hash_password,
    validate_password_strength,
    verify_password,
)
from oceo.config import get_settings


class TestSessionToken:
    def test_round_trip_carries_user_and_role(self) -> None:
        token, expires = create_session_token(42, "admin")
        payload = verify_session_token(token)
        assert payload["user"] == {"id": 42, "role": "admin"}
        assert payload["expires"] == expires.isoformat()

    def test_expiry_uses_configured_lifetime(self) -> None:
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)
        _, expires = create_session_token(1, "member", now=now)
        assert expires == now + timedelta(hours=get_settings().session_expire_hours)

    def test_expired_token_rejected(self) -> None:
        token, _ = create_session_token(1, "member", now=datetime(2000, 1, 1, tzinfo=timezone.utc))
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_session_token(token)

    def test_wrong_secret_rejected(self) -> None:
        payload = {"user": {"id": 1, "role": "member"}}
        token = jwt.encode(payload, "some-other-secret-value-for-tests", algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            verify_session_token(token)

    def test_malformed_payload_rejected(self) -> None:
        settings = get_settings()
        token = jwt.encode({"user": "nobody"}, settings.session_secret, algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError, match="Malformed"):
            verify_session_token(token)


class TestPassword:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("a long passphrase")
        assert hashed.startswith("$argon2id$")
        assert verify_password("a long passphrase", hashed)
        assert not verify_password("wrong passphrase", hashed)

    def test_verify_garbage_hash_is_false(self) -> None:
        assert verify_password("anything", "not-a-hash") is False

    @pytest.mark.parametrize("password", ["", "   ", "short", "x" * 129])
    def test_weak_passwords(self, password: str) -> None:
        with pytest.raises(PasswordStrengthError):
            validate_password_strength(password)

    def test_boundary_lengths_accepted(self) -> None:
        validate_password_strength("x" * 8)
        validate_password_strength("x" * 128)
