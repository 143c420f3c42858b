"""User API — registration, login, profile, password reset.

Learn: Routes for the account lifecycle:
- POST /users → create an account, returns a bearer token
- POST /users/login → username or email + password → bearer token
- GET /users/me → current user info (protected)
- POST /users/forgot-password → email a one-time reset link
- POST /users/forgot-password/{token} → set a new password with that token
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.auth.dependencies import CurrentIdentity, get_current_user
from scribe.auth.jwt import TokenService, get_token_service
from scribe.config import settings
from scribe.db.engine import get_db
from scribe.schemas.user import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    UserCreate,
    UserRead,
)
from scribe.services.mailer import Mailer, get_mailer
from scribe.services.password_reset import PasswordResetService
from scribe.services.user_service import UserService

router = APIRouter(prefix="/users")

RESET_REQUESTED = "A reset link has been sent."


def _svc(
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> UserService:
    return UserService(db, tokens)


def _reset_svc(
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> PasswordResetService:
    return PasswordResetService(
        db,
        mailer,
        frontend_base_url=settings.frontend_base_url,
        expires_minutes=settings.reset_token_expire_minutes,
    )


def _auth_response(user, token: str) -> AuthResponse:
    return AuthResponse(id=user.id, username=user.username, email=user.email, token=token)


@router.post("", response_model=AuthResponse, status_code=201)
async def register(body: UserCreate, svc: UserService = Depends(_svc)):
    """Create a new account."""
    user, token = await svc.register(body.username, body.email, body.password)
    return _auth_response(user, token)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, svc: UserService = Depends(_svc)):
    user, token = await svc.login(body.password, username=body.username, email=body.email)
    return _auth_response(user, token)


@router.get("/me", response_model=UserRead)
async def get_me(identity: CurrentIdentity = Depends(get_current_user)):
    """Get the current authenticated user's info."""
    return UserRead(id=identity.id, username=identity.username, email=identity.email)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest, svc: PasswordResetService = Depends(_reset_svc)
):
    await svc.request_reset(body.email)
    return MessageResponse(message=RESET_REQUESTED)


@router.post("/forgot-password/{token}", response_model=MessageResponse)
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    svc: PasswordResetService = Depends(_reset_svc),
):
    await svc.reset_password(token, body.new_password)
    return MessageResponse(message="Password has been reset.")
