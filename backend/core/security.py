from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, cast

import jwt
from passlib.context import CryptContext

from backend.core.config import settings

# argon2 for new hashes; bcrypt variants still verify older accounts
_pwd = CryptContext(
    schemes=["argon2", "bcrypt_sha256", "bcrypt"],
    default="argon2",
    deprecated="auto",
)


def hash_password(raw: str) -> str:
    return cast(str, _pwd.hash(raw))


def verify_password(raw: str, hashed: str | None) -> bool:
    # Google-only accounts have no local password
    if not hashed:
        return False
    return cast(bool, _pwd.verify(raw, hashed))


def create_access_token(sub: str, *, minutes: int | None = None) -> str:
    minutes = minutes or settings.access_token_expire_minutes
    issued = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": sub,
        "iat": issued,
        "exp": issued + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    return cast(
        dict[str, Any],
        jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        ),
    )


def subject_from_token(token: str) -> str | None:
    """The email a bearer token was issued for, or None when it is unusable.

    Shared by the REST bearer dependency and the websocket handshake so both
    accept exactly the same tokens.
    """
    try:
        payload = decode_token(token)
    except jwt.PyJWTError:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None
