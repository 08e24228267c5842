"""
verify.py
---------
Purpose:
    Issue and verify HS256 bearer tokens signed with JWT_SECRET.

Notes:
    - `sub` carries the user id as a string, `role` the account role.
    - Provides `auth_dependency` for protected routes and
      `current_user_id` for handlers that need the numeric id.
"""

from datetime import UTC, datetime, timedelta

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings

_security = HTTPBearer(auto_error=False)


def create_access_token(user_id: int, role: str = "artist") -> str:
    now = datetime.now(UTC)
    claims = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt(token: str) -> dict:
    try:
        decoded = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": True, "require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as e:
        raise _unauthorized(f"Invalid authentication token: {e}") from e
    return decoded


def auth_dependency(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> dict:
    if credentials is None:
        raise _unauthorized("Not authenticated")
    return verify_jwt(credentials.credentials)


def current_user_id(claims: dict = Depends(auth_dependency)) -> int:
    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError) as e:
        raise _unauthorized("Invalid token subject") from e
    if user_id <= 0:
        raise _unauthorized("Invalid token subject")
    return user_id
