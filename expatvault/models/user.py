from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field


class User(BaseModel):
    id: str
    email: Optional[EmailStr] = None
    role: str = "authenticated"
    attributes: Dict[str, Any] = Field(default_factory=dict)
