"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current identity from the request.

`authenticate` either returns a CurrentIdentity or raises. There is no
path where the handler runs without an identity, and no path where both
an error and the handler happen.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.auth.jwt import TokenService, get_token_service
from scribe.db.engine import get_db
from scribe.db.models import User
from scribe.errors import MissingCredential, Unauthorized

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class CurrentIdentity:
    """The authenticated user making the request.

    Learn: A minimal projection of the users row. Handlers receive this
    value instead of reading identity off a shared request object.
    """

    id: int
    username: str
    email: str


async def authenticate(
    authorization: Optional[str],
    db: AsyncSession,
    tokens: TokenService,
) -> CurrentIdentity:
    """Resolve an Authorization header value to a CurrentIdentity."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise MissingCredential()

    token = authorization.split(" ", 1)[1]
    user_id = tokens.verify(token)
    if user_id is None:
        raise Unauthorized()

    user = await db.get(User, user_id)
    if user is None:
        # Valid signature, but the subject no longer exists.
        raise Unauthorized()

    return CurrentIdentity(id=user.id, username=user.username, email=user.email)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> CurrentIdentity:
    """Extract current identity (required, 401 without a valid bearer token)."""
    return await authenticate(authorization, db, tokens)
