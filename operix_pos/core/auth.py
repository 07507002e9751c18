# operix_pos/core/auth.py
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from operix_pos.core.config import get_settings

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header does not raise here,
#   so we can answer with our own 401 message.
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """
    Identity of the caller, as read from the ERP-issued JWT.

    The raw token is kept so every call this service makes to the ERP
    runs with the caller's own rights.
    """

    user_id: str
    token: str
    email: str | None = None


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an ERP access token (JWT).

    Verification:
      - signature (JWT_ALG using JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CurrentUser:
    """
    Resolve the current user from the bearer token.

    Flow:
      1. No Authorization header => 401.
      2. Decode JWT => extract 'sub' (user id) and optional 'email'.

    Raises:
        HTTPException(401): if the token is missing, invalid, or has no sub.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub",
        )

    return CurrentUser(
        user_id=str(sub),
        token=credentials.credentials,
        email=payload.get("email"),
    )
