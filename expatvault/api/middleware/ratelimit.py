"""Simple Redis-backed rate limiting middleware."""

from __future__ import annotations

import hashlib
import logging
from typing import Callable

from fastapi import Request, status
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from expatvault.core.database import database_manager
from expatvault.core.exceptions import UnauthorizedError
from expatvault.core.security import verify_access_token

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Enforce a fixed-window request limit per caller.

    Requests pass through untouched while Redis is not connected.
    """

    def __init__(self, app, *, requests: int = 60, window_seconds: int = 60) -> None:
        super().__init__(app)
        self.requests = requests
        self.window_seconds = window_seconds

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        redis = database_manager.redis
        if redis is None:
            return await call_next(request)

        identifier = self._derive_identifier(request)
        bucket = f"ratelimit:{identifier}"

        try:
            count = await redis.incr(bucket)
            if count == 1:
                await redis.expire(bucket, self.window_seconds)
            ttl = await redis.ttl(bucket)
        except RedisError as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return await call_next(request)

        if count > self.requests:
            retry_after = ttl if ttl > 0 else self.window_seconds
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Rate limit exceeded", "code": "rate_limited"},
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.requests)
        response.headers["X-RateLimit-Remaining"] = str(max(self.requests - count, 0))
        return response

    def _derive_identifier(self, request: Request) -> str:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1]
            try:
                payload = verify_access_token(token)
                return f"user:{payload.get('sub', 'anonymous')}"
            except UnauthorizedError:
                return f"token:{hashlib.sha256(token.encode('utf-8')).hexdigest()[:16]}"

        client_ip = request.client.host if request.client else "anonymous"
        return f"ip:{client_ip}"
