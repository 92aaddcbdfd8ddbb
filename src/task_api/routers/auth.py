from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..auth import authenticate, get_auth_settings, get_current_user, register_user
from ..models import UserEntity
from ..repositories import UserRepository, get_user_repository
from ..schemas import AuthOut, UserLogin, UserOut, UserRegister
from ..settings import Settings

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
)


def _auth_out(token: str, user: UserEntity) -> AuthOut:
    return AuthOut(token=token, user=UserOut(**user))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=AuthOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an account and return an access token for it.",
    responses={
        201: {"description": "Account created"},
        400: {"description": "Validation error or email already registered"},
    },
)
def register(
    payload: UserRegister,
    users: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_auth_settings),
) -> AuthOut:
    token, user = register_user(users, payload, settings)
    return _auth_out(token, user)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=AuthOut,
    summary="Login",
    description="Exchange email and password for an access token.",
    responses={
        200: {"description": "Logged in"},
        401: {"description": "Invalid email or password"},
    },
)
def login(
    payload: UserLogin,
    users: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_auth_settings),
) -> AuthOut:
    token, user = authenticate(users, payload, settings)
    return _auth_out(token, user)


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=UserOut,
    summary="Current user",
    responses={401: {"description": "Missing or invalid token"}},
)
def me(user: UserEntity = Depends(get_current_user)) -> UserOut:
    """Return the account the bearer token belongs to."""
    return UserOut(**user)  # type: ignore[arg-type]
