"""Authentication dependencies resolving the feed requester."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.session_token import InvalidSessionToken, decode_session_token


auth_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    user_id: str


def _context_from_credentials(credentials: HTTPAuthorizationCredentials) -> AuthContext:
    try:
        claims = decode_session_token(credentials.credentials)
    except InvalidSessionToken as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return AuthContext(user_id=claims.user_id)


async def get_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
) -> AuthContext:
    """Resolve authenticated user from Bearer session token."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing Bearer session token.")
    return _context_from_credentials(credentials)


async def get_optional_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
) -> Optional[AuthContext]:
    """Like get_auth_context, but a missing header means an anonymous caller.

    A header that is present but invalid is still rejected.
    """
    if not credentials:
        return None
    if credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing Bearer session token.")
    return _context_from_credentials(credentials)
