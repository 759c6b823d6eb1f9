"""Password hashing and bearer tokens.

Tokens are HS256 JWTs whose ``sub`` is the user id. Logout puts a token on
an in-process deny-list until the token would have expired anyway.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from backend.app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 6

# token -> expiry (unix seconds); per process, so replicas do not share logouts
_revoked_tokens: dict[str, float] = {}


def create_access_token(subject: str, expires_delta: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode(
        {"sub": subject, "iat": now, "exp": expire},
        settings.SECRET_KEY,
        algorithm=ALGORITHM,
    )


def _claims(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def decode_access_token(token: str) -> str | None:
    """Return the token subject, or None if the token is invalid or expired."""
    claims = _claims(token)
    return claims.get("sub") if claims else None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def _prune_revoked(now: float) -> None:
    for token in [t for t, exp in _revoked_tokens.items() if exp <= now]:
        del _revoked_tokens[token]


def revoke_token(token: str) -> None:
    """Deny *token* until its own expiry. Invalid tokens are ignored."""
    claims = _claims(token)
    if claims is None:
        return
    now = datetime.now(timezone.utc).timestamp()
    _prune_revoked(now)
    _revoked_tokens[token] = float(claims.get("exp", now))


def is_token_revoked(token: str) -> bool:
    return token in _revoked_tokens
