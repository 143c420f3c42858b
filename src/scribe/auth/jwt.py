"""JWT bearer token issuance and verification.

Learn: JWT provides stateless authentication. A token carries the user id
in `sub`, plus `iat`, `exp` and a random `jti` so two tokens issued in the
same second still differ. Tokens live 30 days and cannot be revoked
server side.

The signing secret is passed into TokenService rather than read from a
global, so tests (and anything else) can build their own instance.
"""

import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Optional

import jwt
import structlog

from scribe.config import settings

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenError(Exception):
    """Raised when token verification fails."""


class TokenService:
    """Issue and verify signed, time-limited bearer tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expires_days: int = 30,
        clock: Clock = utcnow,
    ):
        if not secret:
            raise ValueError("TokenService requires a non-empty secret")
        self.secret = secret
        self.algorithm = algorithm
        self.expires_days = expires_days
        self.clock = clock

    def issue(self, user_id: int) -> str:
        """Create a signed token for user_id expiring expires_days from now."""
        now = self.clock()
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + timedelta(days=self.expires_days),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> dict:
        """Verify and decode a token.

        Returns the payload dict on success.
        Raises TokenError on failure.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={
                    "require": ["sub", "exp", "iat"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            raise TokenError(f"Invalid token: {e}")

        # Expiry is judged by the service clock, not by PyJWT's wall clock.
        exp = payload["exp"]
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise TokenError("Invalid token: exp must be a number")
        if exp <= self.clock().timestamp():
            raise TokenError("Token has expired")
        return payload

    def verify(self, token: str) -> Optional[int]:
        """Return the user id a valid token was issued for, else None.

        Malformed, tampered and expired tokens all collapse to None; the
        reason is only logged.
        """
        try:
            payload = self.decode(token)
        except TokenError as e:
            logger.debug("auth.token_rejected", reason=str(e))
            return None

        try:
            return int(payload["sub"])
        except (TypeError, ValueError):
            logger.debug("auth.token_rejected", reason="non-integer subject")
            return None


@lru_cache
def get_token_service() -> TokenService:
    """FastAPI dependency: process-wide TokenService built from Settings."""
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_days=settings.token_expire_days,
    )
