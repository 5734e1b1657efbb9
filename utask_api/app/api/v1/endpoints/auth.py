"""
Authentication endpoints for API v1.

Registration and login return the user together with a signed token.
Login also stores the token in an httpOnly ``token`` cookie so browser
clients are authenticated without handling the token themselves.
"""

from fastapi import APIRouter, Response, status

from utask_api.app.api.deps import CurrentUser, SettingsDep, UserServiceDep
from utask_api.app.core.config import Settings
from utask_api.app.core.errors import Unauthenticated
from utask_api.app.core.security import AUTH_COOKIE_NAME, create_access_token
from utask_api.app.schemas.user import AuthResponse, LoginRequest, MeResponse, UserCreate, UserRead


router = APIRouter()


def _issue_token(user: UserRead, settings: Settings) -> str:
    return create_access_token(
        {"userId": user.id, "email": user.email},
        expires_delta=settings.access_token_expire_minutes * 60,
        secret_key=settings.secret_key,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, users: UserServiceDep, settings: SettingsDep) -> AuthResponse:
    """Register a new user and return it with an access token.

    400 for a malformed e-mail or a weak password, 409 when the e-mail
    is already registered.
    """
    user = await users.register(payload)
    return AuthResponse(user=user, token=_issue_token(user, settings))


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    users: UserServiceDep,
    settings: SettingsDep,
) -> AuthResponse:
    user = await users.authenticate(payload.email, payload.password)
    if not user:
        raise Unauthenticated("Invalid email or password")
    token = _issue_token(user, settings)
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        samesite="strict",
        secure=settings.cookie_secure,
        path="/",
    )
    return AuthResponse(user=user, token=token)


@router.get("/me", response_model=MeResponse)
async def me(current_user: CurrentUser, users: UserServiceDep) -> MeResponse:
    """Return the profile of the authenticated user."""
    return MeResponse(user=await users.get_user(current_user["user_id"]))
