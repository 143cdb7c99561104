"""Audit logging utilities."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from functools import wraps
from inspect import iscoroutinefunction
from typing import Any, Callable, Dict

logger = logging.getLogger("expatvault.audit")


class AuditLogger:
    """Structured audit logger."""

    def record(self, action: str, actor: str, details: Dict[str, Any]) -> None:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "action": action,
            "actor": actor,
            "details": details,
        }
        logger.info(json.dumps(payload, default=str))


audit_logger = AuditLogger()


def audit_log(func: Callable) -> Callable:
    """Decorator that emits structured audit records around a coroutine."""

    if not iscoroutinefunction(func):
        raise TypeError("audit_log only wraps coroutine functions")

    @wraps(func)
    async def wrapper(*args, **kwargs):
        user_id = _resolve_user(kwargs)
        metadata = _build_metadata(func, kwargs)
        audit_logger.record("start", user_id, metadata)
        try:
            result = await func(*args, **kwargs)
        except Exception as exc:
            audit_logger.record("error", user_id, metadata | {"error": exc.__class__.__name__})
            raise
        audit_logger.record("success", user_id, metadata)
        return result

    return wrapper


def _resolve_user(kwargs: Dict[str, Any]) -> str:
    user = kwargs.get("current_user") or kwargs.get("user")
    if user and getattr(user, "id", None):
        return str(user.id)
    return "anonymous"


def _build_metadata(func: Callable, kwargs: Dict[str, Any]) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {"action": func.__qualname__}
    for key in ("reminder_id", "document_id", "days"):
        if key in kwargs:
            metadata[key] = kwargs[key]
    return metadata


__all__ = ["audit_logger", "audit_log", "AuditLogger"]
