"""Tests for session token issuance, verification and revocation."""

from datetime import timedelta

import pytest
from jose import jwt

from chatbot_otp_auth.blacklist import TokenBlacklist
from chatbot_otp_auth.exceptions import TokenError
from chatbot_otp_auth.tokens import TokenIssuer
from chatbot_otp_auth.types import TokenErrorCode
from tests.conftest import MockOTPConfig

# ============================================================================
# Token Issuance Tests
# ============================================================================


class TestIssue:
    """Test suite for token creation."""

    def test_creates_valid_token(self, issuer: TokenIssuer) -> None:
        """Should create a JWT that verifies with the same issuer."""
        token = issuer.issue(123)

        claims = issuer.verify(token)
        assert claims["sub"] == "123"
        assert claims["type"] == "access"

    def test_standard_claims(
        self, issuer: TokenIssuer, test_config: MockOTPConfig
    ) -> None:
        """Tokens should carry issuer, audience, jti, iat and exp."""
        token = issuer.issue("user-1")

        claims = jwt.get_unverified_claims(token)
        assert claims["iss"] == "ai-chatbot-widget"
        assert claims["aud"] == "chatbot-users"
        assert len(claims["jti"]) == 32
        lifetime = claims["exp"] - claims["iat"]
        assert lifetime == int(test_config.access_token_lifetime.total_seconds())

    def test_includes_additional_claims(self, issuer: TokenIssuer) -> None:
        """Caller claims should be embedded next to the standard ones."""
        token = issuer.issue(1, {"email": "user@example.com", "plan": "pro"})

        claims = issuer.verify(token)
        assert TokenIssuer.custom_claims(claims) == {
            "email": "user@example.com",
            "plan": "pro",
        }

    def test_caller_cannot_override_standard_claims(self, issuer: TokenIssuer) -> None:
        """Issuer-controlled claims win over caller claims."""
        token = issuer.issue(1, {"sub": "999", "type": "admin"})

        claims = issuer.verify(token)
        assert claims["sub"] == "1"
        assert claims["type"] == "access"

    def test_tokens_are_unique_within_one_second(self, issuer: TokenIssuer) -> None:
        """Two tokens for the same subject should never be identical."""
        assert issuer.issue(1) != issuer.issue(1)

    def test_custom_lifetime(self, issuer: TokenIssuer) -> None:
        """Guest tokens use their own lifetime and type."""
        token = issuer.issue(
            "guest@example.com", token_type="guest", lifetime=timedelta(hours=24)
        )

        claims = jwt.get_unverified_claims(token)
        assert claims["type"] == "guest"
        assert claims["exp"] - claims["iat"] == 24 * 3600


# ============================================================================
# Token Verification Tests
# ============================================================================


class TestVerify:
    """Test suite for token verification."""

    def test_rejects_expired_token(self, issuer: TokenIssuer) -> None:
        """Should reject tokens past their expiry."""
        token = issuer.issue(1, lifetime=timedelta(seconds=-10))

        with pytest.raises(TokenError) as exc_info:
            issuer.verify(token)

        assert exc_info.value.reason == TokenErrorCode.EXPIRED

    def test_rejects_garbage(self, issuer: TokenIssuer) -> None:
        """Should reject strings that are not JWTs."""
        with pytest.raises(TokenError) as exc_info:
            issuer.verify("not-a-valid-token")

        assert exc_info.value.reason == TokenErrorCode.MALFORMED

    def test_rejects_wrong_secret(self, issuer: TokenIssuer) -> None:
        """Should reject tokens signed with another key."""
        token = jwt.encode(
            {"sub": "1", "type": "access"},
            "another-secret-key-that-is-32-chars-or-more",
            algorithm="HS256",
        )

        with pytest.raises(TokenError) as exc_info:
            issuer.verify(token)

        assert exc_info.value.reason == TokenErrorCode.MALFORMED

    def test_rejects_wrong_audience(self, issuer: TokenIssuer) -> None:
        """Should reject tokens minted for another audience."""

        class OtherAudienceConfig(MockOTPConfig):
            token_audience = "admin-console"

        other = TokenIssuer(OtherAudienceConfig())
        token = other.issue(1)

        with pytest.raises(TokenError) as exc_info:
            issuer.verify(token)

        assert exc_info.value.reason == TokenErrorCode.MALFORMED

    def test_rejects_unexpected_type(self, issuer: TokenIssuer) -> None:
        """Guest tokens are not accepted where access tokens are expected."""
        token = issuer.issue("guest@example.com", token_type="guest")

        with pytest.raises(TokenError) as exc_info:
            issuer.verify(token, expected_type="access")

        assert exc_info.value.reason == TokenErrorCode.MALFORMED


# ============================================================================
# Revocation Tests
# ============================================================================


class TestRevocation:
    """Test suite for token revocation."""

    def test_revoked_token_is_rejected(self, issuer: TokenIssuer) -> None:
        """A revoked token should be rejected even though its signature is valid."""
        token = issuer.issue(1)
        issuer.verify(token)

        issuer.revoke(token)

        assert issuer.is_revoked(token)
        with pytest.raises(TokenError) as exc_info:
            issuer.verify(token)
        assert exc_info.value.reason == TokenErrorCode.REVOKED

    def test_revoking_one_token_keeps_others_valid(self, issuer: TokenIssuer) -> None:
        """Revocation is per token, not per user."""
        first = issuer.issue(1)
        second = issuer.issue(1)

        issuer.revoke(first)

        assert issuer.verify(second)["sub"] == "1"

    def test_revoking_garbage_is_harmless(self, issuer: TokenIssuer) -> None:
        """Any string can be revoked; it is simply rejected afterwards."""
        issuer.revoke("garbage")

        with pytest.raises(TokenError) as exc_info:
            issuer.verify("garbage")
        assert exc_info.value.reason == TokenErrorCode.REVOKED

    def test_shared_blacklist(self, test_config: MockOTPConfig) -> None:
        """Issuers sharing a blacklist see each other's revocations."""
        blacklist = TokenBlacklist()
        first = TokenIssuer(test_config, blacklist)
        second = TokenIssuer(test_config, blacklist)

        token = first.issue(1)
        first.revoke(token)

        assert second.is_revoked(token)


# ============================================================================
# Blacklist Tests
# ============================================================================


class TestTokenBlacklist:
    """Test suite for the bounded revocation set."""

    def test_membership(self) -> None:
        """Added tokens are members."""
        blacklist = TokenBlacklist()
        blacklist.add("token-a")

        assert "token-a" in blacklist
        assert "token-b" not in blacklist
        assert len(blacklist) == 1

    def test_adding_twice_keeps_one_entry(self) -> None:
        """The blacklist is a set."""
        blacklist = TokenBlacklist()
        blacklist.add("token-a")
        blacklist.add("token-a")

        assert len(blacklist) == 1

    def test_empty_token_is_ignored(self) -> None:
        """Empty strings are never stored."""
        blacklist = TokenBlacklist()
        blacklist.add("")

        assert len(blacklist) == 0

    def test_compacts_to_most_recent_entries(self) -> None:
        """Growing past max_size keeps only the newest entries."""
        blacklist = TokenBlacklist(max_size=4, keep=2)
        for i in range(1, 5):
            blacklist.add(f"token-{i}")
        assert len(blacklist) == 4

        blacklist.add("token-5")

        assert len(blacklist) == 2
        assert "token-4" in blacklist
        assert "token-5" in blacklist
        assert "token-1" not in blacklist

    def test_re_adding_refreshes_position(self) -> None:
        """A token revoked again counts as recent."""
        blacklist = TokenBlacklist(max_size=4, keep=2)
        for i in range(1, 5):
            blacklist.add(f"token-{i}")
        blacklist.add("token-1")

        blacklist.add("token-5")

        assert "token-1" in blacklist
        assert "token-5" in blacklist
        assert "token-4" not in blacklist

    def test_keep_larger_than_max_size_is_rejected(self) -> None:
        """Compaction bounds must be consistent."""
        with pytest.raises(ValueError, match="keep"):
            TokenBlacklist(max_size=10, keep=20)
