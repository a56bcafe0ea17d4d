"""Bearer session tokens carrying the verified identity of a feed requester.

Only the subject is trusted from a token. Subscription state is always read
from the database, so a token never grants premium access on its own.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from config import settings


SESSION_TOKEN_TYPE = "feed_session"
DEFAULT_TTL_HOURS = 24


class InvalidSessionToken(ValueError):
    pass


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    issued_at: int
    expires_at: int


def _token_ttl(expires_hours: Optional[int]) -> timedelta:
    hours = int(expires_hours or settings.JWT_EXPIRATION_HOURS or DEFAULT_TTL_HOURS)
    return timedelta(hours=max(hours, 1))


def create_session_token(
    user_id: str,
    *,
    expires_hours: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    subject = str(user_id or "").strip()
    if not subject:
        raise InvalidSessionToken("Session token requires a user id.")

    issued = now or datetime.now(timezone.utc)
    expires_at = int((issued + _token_ttl(expires_hours)).timestamp())
    claims = {
        "sub": subject,
        "type": SESSION_TOKEN_TYPE,
        "iat": int(issued.timestamp()),
        "exp": expires_at,
    }
    return {
        "token": jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM),
        "expires_at": expires_at,
    }


def decode_session_token(token: str) -> SessionClaims:
    """Verify signature, expiry and token type; return the requester claims."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise InvalidSessionToken("Invalid or expired session token.") from exc

    if str(payload.get("type", "")).strip() != SESSION_TOKEN_TYPE:
        raise InvalidSessionToken("Invalid session token type.")

    subject = str(payload.get("sub", "")).strip()
    if not subject:
        raise InvalidSessionToken("Session token missing subject.")

    return SessionClaims(
        user_id=subject,
        issued_at=int(payload.get("iat") or 0),
        expires_at=int(payload.get("exp") or 0),
    )
