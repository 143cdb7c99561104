from .document import Document, DocumentType
from .reminder import (
    REMINDER_LADDER,
    Reminder,
    ReminderDocument,
    ReminderDraft,
    ReminderStatus,
    ReminderType,
    ReminderView,
)
from .user import User

__all__ = [
    "Document",
    "DocumentType",
    "REMINDER_LADDER",
    "Reminder",
    "ReminderDocument",
    "ReminderDraft",
    "ReminderStatus",
    "ReminderType",
    "ReminderView",
    "User",
]
