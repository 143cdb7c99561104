"""Operational endpoints."""

from __future__ import annotations

from typing import Dict

from fastapi import APIRouter

from expatvault.core.config import settings

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health")
async def healthcheck() -> Dict[str, str]:
    """Liveness probe."""

    return {"status": "ok", "environment": settings.ENVIRONMENT, "version": settings.API_VERSION}
