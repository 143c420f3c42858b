"""Resource ownership guard.

Learn: Every read or write of an owned resource goes through get_owned:
1. load by primary key → NotFound if missing
2. compare the owner column with the caller → Forbidden on mismatch
Only then does the caller touch the row, so a rejected request never
leaves a partial change behind.
"""

from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from scribe.auth.dependencies import CurrentIdentity
from scribe.errors import Forbidden, NotFound

T = TypeVar("T")


def ensure_owner(
    resource: Any, identity: CurrentIdentity, owner_field: str = "owner_id"
) -> None:
    """Raise Forbidden unless resource.<owner_field> is the caller's id."""
    if getattr(resource, owner_field) != identity.id:
        raise Forbidden()


async def get_owned(
    db: AsyncSession,
    model: type[T],
    resource_id: Any,
    identity: CurrentIdentity,
    owner_field: str = "owner_id",
) -> T:
    """Load a resource and check the caller owns it."""
    resource = await db.get(model, resource_id)
    if resource is None:
        label = getattr(model, "__tablename__", model.__name__).rstrip("s")
        raise NotFound(f"No {label} with id {resource_id} was found")
    ensure_owner(resource, identity, owner_field)
    return resource
