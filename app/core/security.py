import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from pydantic import ValidationError

from app.config import settings
from app.schemas.user import AuthUser


def _create_token(data: dict[str, Any], expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode["exp"] = datetime.now(timezone.utc) + expires_delta
    to_encode["jti"] = uuid.uuid4().hex
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(user: AuthUser) -> str:
    """Mint an access token carrying the caller identity.

    Real logins are issued by the platform's auth service with the same
    claims; this is used by service-to-service callers and tests.
    """
    return _create_token(
        {
            "sub": user.user_id,
            "school_id": user.school_id,
            "username": user.username,
            "role": user.role.value,
            "type": "access",
        },
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def decode_token(token: str, expected_type: str) -> AuthUser:
    """Decode and validate a JWT token. Returns the caller identity.

    Raises JWTError on any validation failure, including a missing school.
    """
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])

    if payload.get("type") != expected_type:
        raise JWTError(f"Invalid token type: expected {expected_type}")

    sub = payload.get("sub")
    if sub is None:
        raise JWTError("Token missing subject")

    try:
        return AuthUser(
            user_id=sub,
            school_id=payload.get("school_id") or "",
            username=payload.get("username") or "",
            role=payload.get("role") or "student",
        )
    except ValidationError:
        raise JWTError("Invalid identity claims in token")
