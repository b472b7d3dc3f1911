"""Session token issuance, verification and revocation."""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt  # type: ignore[import-untyped]
from jose.exceptions import ExpiredSignatureError  # type: ignore[import-untyped]

from chatbot_otp_auth.blacklist import TokenBlacklist
from chatbot_otp_auth.config import OTPAuthConfig
from chatbot_otp_auth.exceptions import TokenError
from chatbot_otp_auth.types import TokenErrorCode

logger = logging.getLogger(__name__)

# Claims set by the issuer itself; anything else came from the caller
STANDARD_CLAIMS = frozenset({"sub", "type", "jti", "iat", "exp", "iss", "aud"})


class TokenIssuer:
    """
    Mint and check signed session tokens.

    Tokens are JWTs carrying ``sub``, ``type``, a random ``jti`` (so two
    tokens minted in the same second never collide), ``iat``, ``exp``,
    ``iss`` and ``aud``. Revoked tokens are rejected before their signature
    is even looked at.

    Args:
        config: Authentication configuration (secret, algorithm, lifetimes)
        blacklist: Revocation set, sized from the config when omitted
    """

    def __init__(
        self, config: OTPAuthConfig, blacklist: TokenBlacklist | None = None
    ) -> None:
        self.config = config
        self.blacklist = blacklist or TokenBlacklist(
            max_size=config.blacklist_max_size, keep=config.blacklist_keep
        )

    def issue(
        self,
        subject: Any,  # noqa: ANN401
        claims: dict[str, Any] | None = None,
        token_type: str = "access",
        lifetime: timedelta | None = None,
    ) -> str:
        """
        Create a signed token.

        Args:
            subject: Value for the ``sub`` claim (user id, or email for guests)
            claims: Additional claims to embed
            token_type: Stored as the ``type`` claim ("access" or "guest")
            lifetime: Defaults to the configured access token lifetime

        Returns:
            Encoded JWT string
        """
        now = datetime.now(UTC)
        payload = {
            **(claims or {}),
            "sub": str(subject),
            "type": token_type,
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + (lifetime or self.config.access_token_lifetime),
            "iss": self.config.token_issuer,
            "aud": self.config.token_audience,
        }
        return jwt.encode(payload, self.config.secret_key, algorithm=self.config.algorithm)

    def revoke(self, token: str) -> None:
        self.blacklist.add(token)

    def is_revoked(self, token: str) -> bool:
        return token in self.blacklist

    def verify(self, token: str, expected_type: str | None = None) -> dict[str, Any]:
        """
        Decode a token and return its claims.

        Raises:
            TokenError: REVOKED if blacklisted, EXPIRED if past ``exp``,
                MALFORMED for anything else that fails validation
        """
        if self.is_revoked(token):
            raise TokenError(TokenErrorCode.REVOKED, "Token has been revoked")

        try:
            claims = jwt.decode(
                token,
                self.config.secret_key,
                algorithms=[self.config.algorithm],
                audience=self.config.token_audience,
                issuer=self.config.token_issuer,
                options={"require_exp": True, "require_iat": True, "require_jti": True},
            )
        except ExpiredSignatureError as e:
            raise TokenError(TokenErrorCode.EXPIRED, "Token has expired") from e
        except JWTError as e:
            logger.debug("Token rejected: %s", e)
            raise TokenError(TokenErrorCode.MALFORMED, "Invalid token") from e

        if expected_type is not None and claims.get("type") != expected_type:
            raise TokenError(TokenErrorCode.MALFORMED, "Invalid token type")

        return claims

    @staticmethod
    def custom_claims(claims: dict[str, Any]) -> dict[str, Any]:
        """Strip the issuer-controlled claims from a decoded payload."""
        return {k: v for k, v in claims.items() if k not in STANDARD_CLAIMS}
