"""Deadline resolution for classified vault documents.

A document's classifier output is a loose mapping of field names to raw
strings. For the document types that carry a consequential date, exactly one
of those fields is treated as the deadline. `DEADLINE_FIELDS` holds the
preference order per type; the first field with a non-empty value wins, even
if that value later fails to parse.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, Mapping, Optional, Sequence, Tuple

from expatvault.models.document import DocumentType

logger = logging.getLogger(__name__)


DEADLINE_FIELDS: Dict[DocumentType, Tuple[str, ...]] = {
    DocumentType.PASSPORT: ("expiry_date",),
    DocumentType.RESIDENCE_PERMIT: ("expiry_date",),
    DocumentType.RENTAL_CONTRACT: ("cancellation_deadline", "end_date"),
    DocumentType.EMPLOYMENT_CONTRACT: ("cancellation_deadline", "end_date"),
    DocumentType.INSURANCE_DOCUMENTS: ("renewal_date", "expiry_date"),
}


def _ymd(match: re.Match) -> date:
    return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))


def _dmy(match: re.Match) -> date:
    return date(int(match.group(3)), int(match.group(2)), int(match.group(1)))


# Slash dates are day-first; "03/04/2025" is the 3rd of April.
_PATTERNS: Sequence[Tuple[re.Pattern, Callable[[re.Match], date]]] = (
    (re.compile(r"(\d{4})-(\d{2})-(\d{2})"), _ymd),
    (re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})"), _dmy),
    (re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"), _dmy),
)

_FALLBACK_FORMATS = (
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%Y/%m/%d",
    "%Y%m%d",
)


def parse_date(raw: Optional[str]) -> Optional[date]:
    """Parse a raw extracted value into a calendar date, or None."""

    if raw is None:
        return None
    value = str(raw).strip()
    if not value:
        return None

    for pattern, build in _PATTERNS:
        match = pattern.search(value)
        if not match:
            continue
        try:
            return build(match)
        except ValueError:
            logger.debug("Matched %s but %r is not a calendar date", pattern.pattern, value)

    return _parse_fallback(value)


def _parse_fallback(value: str) -> Optional[date]:
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    logger.warning("Could not parse date value %r", value)
    return None


@dataclass(frozen=True)
class DeadlineResolution:
    deadline_date: Optional[date] = None
    source_field_name: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.deadline_date is not None


NO_DEADLINE = DeadlineResolution()


class DeadlineResolver:
    """Select and parse the deadline field for a document type."""

    def __init__(self, table: Optional[Mapping[DocumentType, Sequence[str]]] = None) -> None:
        self.table = dict(table or DEADLINE_FIELDS)

    def fields_for(self, document_type: DocumentType | str | None) -> Tuple[str, ...]:
        if not isinstance(document_type, DocumentType):
            document_type = DocumentType.parse(document_type)
        return tuple(self.table.get(document_type, ()))

    def resolve(
        self,
        document_type: DocumentType | str | None,
        fields: Optional[Mapping[str, Optional[str]]],
    ) -> DeadlineResolution:
        if not fields:
            return NO_DEADLINE

        for name in self.fields_for(document_type):
            raw = fields.get(name)
            if raw is None or not str(raw).strip():
                continue
            return DeadlineResolution(deadline_date=parse_date(raw), source_field_name=name)

        return NO_DEADLINE


deadline_resolver = DeadlineResolver()

__all__ = ["DEADLINE_FIELDS", "DeadlineResolution", "DeadlineResolver", "deadline_resolver", "parse_date"]
