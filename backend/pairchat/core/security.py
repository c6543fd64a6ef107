from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import jwt

from pairchat.core.config import settings


def create_access_token(
    subject: str | int,
    expires_delta: Optional[timedelta] = None,
    **claims: Any,
) -> str:
    """Issue a signed token carrying the identity claims the chat gateway reads."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode: dict[str, Any] = {"exp": expire, "sub": str(subject)}
    to_encode.update(claims)
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a token; raises ``JWTError`` on any failure."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
