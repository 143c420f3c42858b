"""User service — registration, login, profile lookup.

Learn: Service layer separates business logic from HTTP routing.
Uniqueness of email and username is left to the database's unique
constraints: checking first and inserting second would race, so the
IntegrityError from the insert is what becomes a ConflictError.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.auth.jwt import TokenService
from scribe.auth.password import hash_password, verify_password
from scribe.db.models import User
from scribe.errors import ConflictError, NotFound, Unauthorized, ValidationError

logger = structlog.get_logger()

LOGIN_FAILED = "Couldn't find your account."


class UserService:
    """Business logic for accounts and credentials."""

    def __init__(self, db: AsyncSession, tokens: TokenService):
        self.db = db
        self.tokens = tokens

    async def register(
        self, username: str, email: str, password: str
    ) -> tuple[User, str]:
        """Create an account and return it with a fresh bearer token."""
        username = username.strip()
        email = email.strip()
        if not username or not email or not password:
            raise ValidationError("Please include all fields.")

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info("user.register_conflict", username=username)
            raise ConflictError()

        await self.db.refresh(user)
        logger.info("user.registered", user_id=user.id)
        return user, self.tokens.issue(user.id)

    async def login(
        self,
        password: str,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> tuple[User, str]:
        """Check credentials by username or email; return user and token."""
        if username:
            q = select(User).where(User.username == username.strip())
        elif email:
            q = select(User).where(User.email == email.strip())
        else:
            raise ValidationError("Provide a username or an email.")

        result = await self.db.execute(q)
        user = result.scalars().first()

        if not user or not verify_password(password, user.password_hash):
            logger.info("user.login_failed", username=username, email=email)
            raise Unauthorized(LOGIN_FAILED)

        logger.info("user.logged_in", user_id=user.id)
        return user, self.tokens.issue(user.id)

    async def get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user
