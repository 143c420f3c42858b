"""Password reset flow.

Learn: A reset moves a user through
    NoResetPending → ResetRequested(token, expiry) → NoResetPending
either by consuming the token or by letting it expire.

- request_reset stores a fresh token (hashed) with a 10 minute expiry,
  replacing any pending one, then emails the raw token in a link.
- reset_password is a single conditional UPDATE keyed on the token hash
  and expiry. The new password and the cleared token land in the same
  statement, so a consumed token can never match again.

Wrong and expired tokens produce the same InvalidOrExpiredToken.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.auth.password import hash_password
from scribe.db.models import User
from scribe.errors import InvalidOrExpiredToken, NotFound
from scribe.services.mailer import MailDeliveryError, Mailer

logger = structlog.get_logger()

RESET_SUBJECT = "Reset your Scribe password"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_reset_token() -> str:
    """Raw token handed to the user: 32 random bytes, URL-safe."""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """The database stores only this digest of the raw token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class PasswordResetService:
    def __init__(
        self,
        db: AsyncSession,
        mailer: Mailer,
        frontend_base_url: str,
        expires_minutes: int = 10,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.mailer = mailer
        self.frontend_base_url = frontend_base_url.rstrip("/")
        self.expires_minutes = expires_minutes
        self.clock = clock

    def reset_link(self, token: str) -> str:
        return f"{self.frontend_base_url}/reset-password/{token}"

    def _email_body(self, token: str) -> str:
        return (
            "You are receiving this email because a password reset was "
            "requested for your account.\n\n"
            f"Open the link below within {self.expires_minutes} minutes "
            "to choose a new password:\n\n"
            f"{self.reset_link(token)}\n\n"
            "If you did not request this, you can ignore this email."
        )

    async def request_reset(self, email: str) -> None:
        """Issue a reset token for the account with this email and mail it.

        Raises NotFound for an unknown email. A failed email is logged but
        does not fail the request.
        """
        result = await self.db.execute(select(User).where(User.email == email.strip()))
        user = result.scalars().first()
        if not user:
            raise NotFound("No account with that email was found")

        raw_token = generate_reset_token()
        user.reset_token_hash = hash_token(raw_token)
        user.reset_token_expires_at = self.clock() + timedelta(
            minutes=self.expires_minutes
        )
        await self.db.commit()
        logger.info("password_reset.requested", user_id=user.id)

        try:
            await self.mailer.send(user.email, RESET_SUBJECT, self._email_body(raw_token))
        except MailDeliveryError:
            logger.exception("password_reset.email_failed", user_id=user.id)

    async def reset_password(self, token: str, new_password: str) -> None:
        """Exchange a pending, unexpired token for a new password."""
        stmt = (
            update(User)
            .where(
                User.reset_token_hash == hash_token(token),
                User.reset_token_expires_at >= self.clock(),
            )
            .values(
                password_hash=hash_password(new_password),
                reset_token_hash=None,
                reset_token_expires_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            await self.db.rollback()
            logger.info("password_reset.rejected")
            raise InvalidOrExpiredToken()

        await self.db.commit()
        logger.info("password_reset.completed")
