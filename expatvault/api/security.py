"""Authentication utilities for API routes."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from expatvault.core.exceptions import UnauthorizedError
from expatvault.core.security import verify_access_token
from expatvault.models import User

_http_bearer = HTTPBearer(auto_error=False)


async def authenticate_user(
    request: Request,
    bearer_token: Optional[HTTPAuthorizationCredentials] = Depends(_http_bearer),
) -> User:
    if not bearer_token or not bearer_token.credentials:
        raise UnauthorizedError("Unauthorized")

    payload = verify_access_token(bearer_token.credentials)
    subject = payload.get("sub")
    if not subject:
        raise UnauthorizedError("Invalid token")

    user = User(
        id=str(subject),
        email=payload.get("email") or None,
        role=payload.get("role", "authenticated"),
        attributes={key: value for key, value in payload.items() if key not in {"sub", "exp", "iat", "aud", "email", "role"}},
    )
    request.state.user = user
    return user


__all__ = ["authenticate_user"]
