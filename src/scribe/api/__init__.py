"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter for the posts router, so no post route can be
added without authentication. The users router mixes open routes
(register, login, reset) with /me, which declares its own dependency.
"""

from fastapi import APIRouter, Depends

from scribe.api.health import router as health_router
from scribe.api.posts import router as posts_router
from scribe.api.users import router as users_router
from scribe.auth.dependencies import get_current_user

_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open routes, no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(users_router, tags=["users"])

# Protected routes, require a valid bearer token
api_router.include_router(posts_router, tags=["posts"], dependencies=_auth)
