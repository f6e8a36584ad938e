"""
Test Suite: Token Service
=========================

Access and refresh tokens are signed with separate secrets, carry a
type claim, and fail verification with an AuthenticationError whose
reason names the exact problem while the public message stays generic.
"""

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from campeiro.core.exceptions import (
    GENERIC_AUTH_MESSAGE,
    AuthenticationError,
    TokenExpiredError,
    TokenInvalidError,
)
from campeiro.gateway.auth import PasswordService, TokenService

from conftest import ACCESS_SECRET, REFRESH_SECRET


@pytest.fixture
def tokens(security):
    return TokenService(security)


class TestAccessTokens:
    """Short-lived, stateless bearer tokens."""

    def test_roundtrip_carries_subject_and_role(self, tokens):
        claims = tokens.verify_access(tokens.issue_access("user-1", "client"))

        assert claims.subject == "user-1"
        assert claims.role == "client"
        assert claims.expires_at > datetime.now(UTC)

    def test_default_lifetime_is_fifteen_minutes(self, tokens):
        token = tokens.issue_access("user-1", "admin")
        payload = jwt.decode(token, ACCESS_SECRET, algorithms=["HS256"])

        assert payload["exp"] - payload["iat"] == 15 * 60
        assert payload["type"] == "access"

    def test_expired_token_is_rejected(self, tokens):
        token = tokens.issue_access("user-1", "client", expires_delta=timedelta(seconds=-5))

        with pytest.raises(TokenExpiredError) as exc_info:
            tokens.verify_access(token)
        assert exc_info.value.reason == "token_expired"

    def test_tampered_token_is_rejected(self, tokens):
        token = tokens.issue_access("user-1", "client")
        forged = jwt.encode(
            {**jwt.decode(token, options={"verify_signature": False}), "role": "admin"},
            "some-other-secret-that-is-long-enough",
            algorithm="HS256",
        )

        with pytest.raises(TokenInvalidError):
            tokens.verify_access(forged)

    def test_garbage_is_rejected(self, tokens):
        with pytest.raises(TokenInvalidError):
            tokens.verify_access("not-a-token")

    def test_empty_token_is_rejected(self, tokens):
        with pytest.raises(TokenInvalidError) as exc_info:
            tokens.verify_access("")
        assert exc_info.value.reason == "token_missing"

    def test_refresh_token_is_not_an_access_token(self, tokens):
        refresh = tokens.issue_refresh("user-1", "session-1")

        # Signed with the other secret
        with pytest.raises(TokenInvalidError):
            tokens.verify_access(refresh)

    def test_type_claim_is_enforced(self, tokens):
        now = datetime.now(UTC)
        token = jwt.encode(
            {"sub": "user-1", "role": "client", "type": "refresh", "iat": now,
             "exp": now + timedelta(minutes=5)},
            ACCESS_SECRET,
            algorithm="HS256",
        )

        with pytest.raises(TokenInvalidError) as exc_info:
            tokens.verify_access(token)
        assert exc_info.value.reason == "token_type_mismatch"


class TestRefreshTokens:
    """Refresh tokens are bound to a session and have no exp claim."""

    def test_roundtrip_carries_subject_and_session(self, tokens):
        claims = tokens.verify_refresh(tokens.issue_refresh("user-1", "session-1"))

        assert claims.subject == "user-1"
        assert claims.session_id == "session-1"

    def test_no_expiry_claim(self, tokens):
        payload = jwt.decode(
            tokens.issue_refresh("user-1", "session-1"), REFRESH_SECRET, algorithms=["HS256"]
        )

        assert "exp" not in payload
        assert payload["type"] == "refresh"
        assert payload["sid"] == "session-1"

    def test_each_token_is_unique(self, tokens):
        assert tokens.issue_refresh("u", "s") != tokens.issue_refresh("u", "s")

    def test_access_token_is_not_a_refresh_token(self, tokens):
        with pytest.raises(TokenInvalidError):
            tokens.verify_refresh(tokens.issue_access("user-1", "client"))

    def test_missing_session_claim_is_rejected(self, tokens):
        token = jwt.encode(
            {"sub": "user-1", "type": "refresh"}, REFRESH_SECRET, algorithm="HS256"
        )

        with pytest.raises(TokenInvalidError):
            tokens.verify_refresh(token)


class TestFailureShape:
    """Every failure is an AuthenticationError with one public message."""

    def test_errors_share_public_message(self, tokens):
        failures = []
        for token in ("", "junk", tokens.issue_access("u", "client", timedelta(seconds=-1))):
            with pytest.raises(AuthenticationError) as exc_info:
                tokens.verify_access(token)
            failures.append(exc_info.value)

        assert {e.public_message for e in failures} == {GENERIC_AUTH_MESSAGE}
        assert len({e.reason for e in failures}) == 3
        assert all(e.status_code == 401 for e in failures)


class TestPasswords:
    """bcrypt hashing through passlib."""

    @pytest.fixture
    def passwords(self):
        return PasswordService(rounds=4)

    def test_hash_and_verify(self, passwords):
        hashed = passwords.hash_password("secret1")

        assert hashed != "secret1"
        assert passwords.verify_password("secret1", hashed)
        assert not passwords.verify_password("secret2", hashed)

    def test_missing_or_malformed_hash_is_false(self, passwords):
        assert not passwords.verify_password("secret1", None)
        assert not passwords.verify_password("secret1", "")
        assert not passwords.verify_password("secret1", "not-a-bcrypt-hash")

    def test_fresh_hash_needs_no_rehash(self, passwords):
        assert not passwords.needs_rehash(passwords.hash_password("secret1"))
