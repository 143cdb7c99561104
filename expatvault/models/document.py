"""Document data model definitions."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class DocumentType(str, Enum):
    PASSPORT = "passport"
    RESIDENCE_PERMIT = "residence_permit"
    RENTAL_CONTRACT = "rental_contract"
    EMPLOYMENT_CONTRACT = "employment_contract"
    INSURANCE_DOCUMENTS = "insurance_documents"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "DocumentType":
        """Map a classifier tag onto the closed set, folding unknown tags into OTHER."""

        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class Document(BaseModel):
    """A vault document row. Read-only to the export and reminder code."""

    id: str
    user_id: str
    file_name: str
    storage_path: str
    mime_type: str = "application/octet-stream"
    document_type: Optional[str] = None
    extracted_fields: Dict[str, Optional[str]] = Field(default_factory=dict)
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
