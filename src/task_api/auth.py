from __future__ import annotations

import base64
import hashlib
import logging
import time
from typing import Optional, Tuple

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .errors import AuthenticationError
from .models import UserEntity
from .repositories import UserRepository, get_user_repository
from .schemas import UserLogin, UserRegister
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

_security = HTTPBearer(auto_error=False)


def _prehash(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes; a base64 SHA-256 digest always fits
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


# PUBLIC_INTERFACE
def hash_password(password: str, rounds: int = 12) -> str:
    """Return a bcrypt hash of the SHA-256 pre-hashed password."""
    return bcrypt.hashpw(_prehash(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


# PUBLIC_INTERFACE
def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_prehash(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# PUBLIC_INTERFACE
def create_token(user_id: str, settings: Settings) -> str:
    """Issue a signed access token whose subject is the user id."""
    expires = int(time.time()) + settings.jwt_ttl_seconds
    return jwt.encode({"sub": user_id, "exp": expires}, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, settings: Settings) -> str:
    """Return the user id carried by a valid token. Raises AuthenticationError otherwise."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise AuthenticationError("Not authorized, token failed") from e
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Not authorized, token failed")
    return str(user_id)


# PUBLIC_INTERFACE
def register_user(users: UserRepository, payload: UserRegister, settings: Settings) -> Tuple[str, UserEntity]:
    """Create an account and return (token, user). Raises ConflictError for a taken email."""
    user = users.create(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password, settings.bcrypt_rounds),
    )
    logger.info("Registered user %s", user["id"])
    return create_token(user["id"], settings), user


# PUBLIC_INTERFACE
def authenticate(users: UserRepository, payload: UserLogin, settings: Settings) -> Tuple[str, UserEntity]:
    """Check credentials and return (token, user). Raises AuthenticationError on mismatch."""
    user = users.get_by_email(payload.email)
    if user is None or not verify_password(payload.password, user["password_hash"]):
        logger.info("Failed login for %s", payload.email)
        raise AuthenticationError("Invalid email or password")
    return create_token(user["id"], settings), user


# PUBLIC_INTERFACE
def get_auth_settings() -> Settings:
    """Dependency providing settings to the auth layer; overridable in tests."""
    return get_settings()


# PUBLIC_INTERFACE
def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_security),
    users: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_auth_settings),
) -> UserEntity:
    """
    Resolve the caller from an 'Authorization: Bearer <token>' header.

    Raises:
        AuthenticationError(401) if the token is missing, invalid, expired, or names a
        user that no longer exists.
    """
    if creds is None or not creds.credentials:
        raise AuthenticationError("Not authorized, no token")

    user_id = decode_token(creds.credentials, settings)
    user = users.get(user_id)
    if user is None:
        raise AuthenticationError("Not authorized, token failed")
    return user
