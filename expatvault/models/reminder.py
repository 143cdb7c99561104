"""Document reminder data model definitions."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ReminderType(str, Enum):
    THIRTY_DAYS = "30_days"
    FOURTEEN_DAYS = "14_days"
    SEVEN_DAYS = "7_days"
    ONE_DAY = "1_day"

    @property
    def offset_days(self) -> int:
        return _OFFSETS[self]


_OFFSETS = {
    ReminderType.THIRTY_DAYS: 30,
    ReminderType.FOURTEEN_DAYS: 14,
    ReminderType.SEVEN_DAYS: 7,
    ReminderType.ONE_DAY: 1,
}

# Ladder order, furthest from the deadline first.
REMINDER_LADDER = tuple(ReminderType)


class ReminderStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    SNOOZED = "snoozed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReminderDraft(BaseModel):
    """A ladder entry that has been computed but not yet persisted."""

    document_id: str
    user_id: str
    reminder_type: ReminderType
    reminder_date: datetime
    deadline_date: datetime
    status: ReminderStatus = ReminderStatus.PENDING


class Reminder(ReminderDraft):
    id: str
    snoozed_until: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReminderDocument(BaseModel):
    """Summary of the document a reminder points at."""

    id: str
    file_name: str
    document_type: Optional[str] = None
    download_url: str


class ReminderView(Reminder):
    """Reminder row enriched for listing.

    `document` is None when the document was deleted or is not owned by the
    reminder's user.
    """

    days_remaining: int
    is_overdue: bool
    document: Optional[ReminderDocument] = None
