# applytrack/token.py
from __future__ import annotations
from datetime import datetime, timedelta, timezone
import jwt
from .config import settings
from .errors import TokenExpired, TokenInvalid

def create_access_token(
    subject: str,
    expires_delta: timedelta | None = None,
    now: datetime | None = None,
) -> str:
    """Sign a session token for ``subject`` (a user id)."""
    now = now or datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    exp = now + expires_delta
    payload = {"sub": subject, "iat": int(now.timestamp()), "exp": int(exp.timestamp())}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_access_token(token: str | None) -> str:
    """Return the user id carried by ``token``.

    Raises TokenExpired past the ``exp`` claim and TokenInvalid for anything else
    (absent token, bad signature, malformed payload).
    """
    if not token:
        raise TokenInvalid("Access denied. No token provided.")
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except jwt.PyJWTError:
        raise TokenInvalid()
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise TokenInvalid()
    return subject
