"""In-memory collaborators shared by the unit and API tests."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from expatvault.core.exceptions import PersistenceError
from expatvault.models import Document, Reminder, ReminderDraft, ReminderStatus
from expatvault.vault.storage import ObjectNotFoundError

NOW = datetime(2025, 12, 1, tzinfo=timezone.utc)


class StubDocumentStore:
    def __init__(self, documents: Sequence[Document]) -> None:
        self.documents = list(documents)

    def _live(self, user_id: str) -> List[Document]:
        return [doc for doc in self.documents if doc.user_id == user_id and doc.deleted_at is None]

    async def find_owned(self, document_ids, user_id):
        wanted = set(document_ids)
        return [doc for doc in self._live(user_id) if doc.id in wanted]

    async def get_owned(self, document_id, user_id):
        for doc in self._live(user_id):
            if doc.id == document_id:
                return doc
        return None


class StubObjectStore:
    def __init__(self, objects: Dict[str, bytes]) -> None:
        self.objects = dict(objects)
        self.downloads: List[str] = []

    async def download(self, path: str) -> bytes:
        self.downloads.append(path)
        if path not in self.objects:
            raise ObjectNotFoundError(f"{path} not found")
        return self.objects[path]


class InMemoryReminderRepository:
    """Mirrors `ReminderRepository` semantics, including the unique ladder key."""

    def __init__(self, fail_inserts: bool = False) -> None:
        self.rows: Dict[str, Reminder] = {}
        self.fail_inserts = fail_inserts
        self.insert_calls = 0

    async def insert_batch(self, drafts: Sequence[ReminderDraft]) -> int:
        self.insert_calls += 1
        if self.fail_inserts:
            raise PersistenceError("relation document_reminders does not exist")
        for draft in drafts:
            if any(
                row.document_id == draft.document_id and row.reminder_type == draft.reminder_type
                for row in self.rows.values()
            ):
                continue
            reminder_id = f"rem-{len(self.rows) + 1}"
            self.rows[reminder_id] = Reminder(id=reminder_id, **draft.model_dump())
        return len(drafts)

    async def list_for_user(self, user_id: str, status: Optional[ReminderStatus] = None) -> List[Reminder]:
        rows = [row for row in self.rows.values() if row.user_id == user_id]
        if status is not None:
            rows = [row for row in rows if row.status == status]
        return sorted(rows, key=lambda row: row.deadline_date)

    async def release_snoozed(self, user_id: str, now: datetime) -> int:
        released = 0
        for reminder_id, row in self.rows.items():
            if row.user_id == user_id and row.status == ReminderStatus.SNOOZED and row.snoozed_until <= now:
                self.rows[reminder_id] = row.model_copy(update={"status": ReminderStatus.PENDING, "snoozed_until": None})
                released += 1
        return released

    async def get_owned(self, reminder_id: str, user_id: str) -> Optional[Reminder]:
        row = self.rows.get(reminder_id)
        if row is None or row.user_id != user_id:
            return None
        return row

    async def update_owned(self, reminder_id: str, user_id: str, changes: dict) -> Optional[Reminder]:
        row = self.rows.get(reminder_id)
        if row is None or row.user_id != user_id:
            return None
        updated = row.model_copy(update=changes)
        self.rows[reminder_id] = updated
        return updated

    async def delete_owned(self, reminder_id: str, user_id: str) -> bool:
        row = self.rows.get(reminder_id)
        if row is None or row.user_id != user_id:
            return False
        del self.rows[reminder_id]
        return True


def make_document(doc_id: str, file_name: str, user_id: str = "user-1", **extra) -> Document:
    return Document(
        id=doc_id,
        user_id=user_id,
        file_name=file_name,
        storage_path=f"{user_id}/{doc_id}",
        mime_type=extra.pop("mime_type", "application/pdf"),
        **extra,
    )
