"""
security.py — Authentication Utilities (JWT Encoding & Role Guards)

Purpose:
- Issue and validate the HS256 access tokens shared with the auth service.
- Extract the current caller from `Authorization: Bearer <token>`.
- Restrict role-scoped routers to callers holding the matching role claim.

Key Constraints:
- Authentication is stateless — users live in the external auth service, the
  gateway only trusts the signed claims (userId, orgUserId, email, role, name).
- Roles: STARTUP, INVESTOR, VALIDATOR, PLATFORM.

This module does NOT:
- Hash passwords or look users up (the auth service owns the user store).
- Define API routes.
"""

import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from crowdledger.core.config import settings

ALGORITHM = "HS256"
ROLES = ("STARTUP", "INVESTOR", "VALIDATOR", "PLATFORM")

_bearer = HTTPBearer(auto_error=False)


# -----------------------------------------------------------------------------
# JWT Token Handling
# -----------------------------------------------------------------------------

def create_access_token(data: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    """
    Create a JWT access token with expiration.

    Expected payload format:
        data = {"userId": ..., "role": "INVESTOR", ...}
    """
    to_encode = data.copy()
    minutes = settings.JWT_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    now = datetime.datetime.now(datetime.timezone.utc)
    to_encode.update({"iat": now, "exp": now + datetime.timedelta(minutes=minutes)})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT token.
    Returns the payload dict if valid, None if invalid or expired.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


# -----------------------------------------------------------------------------
# Current User Dependency
# -----------------------------------------------------------------------------

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Dict[str, Any]:
    """
    Return the verified token claims for the caller.

    With AUTH_ENABLED=false every request is treated as an anonymous caller
    holding all roles (local development only).
    """
    if not settings.AUTH_ENABLED:
        return {"role": "*", "userId": None}

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No token provided")

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return payload


def require_role(*allowed: str) -> Callable[..., Dict[str, Any]]:
    """Dependency factory: 403 unless the caller's role claim is one of `allowed`."""
    wanted = {role.upper() for role in allowed}

    def _guard(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        role = str(user.get("role") or "").upper()
        if role != "*" and role not in wanted:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return user

    return _guard
