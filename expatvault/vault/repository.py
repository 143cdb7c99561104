"""Row-store access for vault documents and their reminders."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING, ReturnDocument, UpdateOne
from pymongo.errors import PyMongoError

from expatvault.core.config import settings
from expatvault.core.database import database_manager
from expatvault.core.exceptions import PersistenceError
from expatvault.models import Document, Reminder, ReminderDraft, ReminderStatus

logger = logging.getLogger(__name__)

_DOCUMENT_PROJECTION = {"_id": 0}
_REMINDER_PROJECTION = {"_id": 0}


class DocumentStore(Protocol):
    async def find_owned(self, document_ids: Sequence[str], user_id: str) -> List[Document]:
        ...

    async def get_owned(self, document_id: str, user_id: str) -> Optional[Document]:
        ...


class ReminderStore(Protocol):
    async def insert_batch(self, drafts: Sequence[ReminderDraft]) -> int:
        ...


def _collection(name: str) -> AsyncIOMotorCollection:
    collection = database_manager.collection(name)
    if collection is None:
        raise PersistenceError("MongoDB client unavailable")
    return collection


class DocumentRepository:
    """Owner-scoped reads over the `documents` collection.

    Soft-deleted rows (non-null `deleted_at`) are never returned.
    """

    def __init__(self, collection_name: Optional[str] = None) -> None:
        self.collection_name = collection_name or settings.DOCUMENTS_COLLECTION

    async def find_owned(self, document_ids: Sequence[str], user_id: str) -> List[Document]:
        query = {"id": {"$in": list(dict.fromkeys(document_ids))}, "user_id": user_id, "deleted_at": None}
        try:
            cursor = _collection(self.collection_name).find(query, _DOCUMENT_PROJECTION)
            rows = await cursor.to_list(length=None)
        except PyMongoError as exc:
            raise PersistenceError(f"Document lookup failed: {exc}") from exc
        return [Document.model_validate(row) for row in rows]

    async def get_owned(self, document_id: str, user_id: str) -> Optional[Document]:
        query = {"id": document_id, "user_id": user_id, "deleted_at": None}
        try:
            row = await _collection(self.collection_name).find_one(query, _DOCUMENT_PROJECTION)
        except PyMongoError as exc:
            raise PersistenceError(f"Document lookup failed: {exc}") from exc
        return Document.model_validate(row) if row else None


class ReminderRepository:
    """Persistence for the `document_reminders` collection."""

    def __init__(self, collection_name: Optional[str] = None) -> None:
        self.collection_name = collection_name or settings.REMINDERS_COLLECTION

    async def insert_batch(self, drafts: Sequence[ReminderDraft]) -> int:
        """Persist a reminder ladder in a single bulk write.

        Each entry is an upsert on `(document_id, reminder_type)` that only
        sets fields on insert, so a repeated classification of the same
        document leaves the existing rows (and any snooze state) untouched.
        """

        if not drafts:
            return 0
        now = datetime.now(timezone.utc)
        operations = [
            UpdateOne(
                {"document_id": draft.document_id, "reminder_type": draft.reminder_type.value},
                {"$setOnInsert": self._new_row(draft, now)},
                upsert=True,
            )
            for draft in drafts
        ]
        try:
            await _collection(self.collection_name).bulk_write(operations, ordered=True)
        except PyMongoError as exc:
            raise PersistenceError(f"Reminder batch insert failed: {exc}") from exc
        return len(operations)

    async def list_for_user(self, user_id: str, status: Optional[ReminderStatus] = None) -> List[Reminder]:
        query: Dict[str, Any] = {"user_id": user_id}
        if status is not None:
            query["status"] = status.value
        try:
            cursor = _collection(self.collection_name).find(query, _REMINDER_PROJECTION).sort("deadline_date", ASCENDING)
            rows = await cursor.to_list(length=None)
        except PyMongoError as exc:
            raise PersistenceError(f"Reminder listing failed: {exc}") from exc
        return [Reminder.model_validate(row) for row in rows]

    async def release_snoozed(self, user_id: str, now: datetime) -> int:
        """Return snoozed reminders whose snooze window has elapsed to pending."""

        query = {
            "user_id": user_id,
            "status": ReminderStatus.SNOOZED.value,
            "snoozed_until": {"$lte": now},
        }
        update = {"$set": {"status": ReminderStatus.PENDING.value, "snoozed_until": None, "updated_at": now}}
        try:
            result = await _collection(self.collection_name).update_many(query, update)
        except PyMongoError as exc:
            raise PersistenceError(f"Releasing snoozed reminders failed: {exc}") from exc
        return result.modified_count

    async def get_owned(self, reminder_id: str, user_id: str) -> Optional[Reminder]:
        try:
            row = await _collection(self.collection_name).find_one(
                {"id": reminder_id, "user_id": user_id}, _REMINDER_PROJECTION
            )
        except PyMongoError as exc:
            raise PersistenceError(f"Reminder lookup failed: {exc}") from exc
        return Reminder.model_validate(row) if row else None

    async def update_owned(self, reminder_id: str, user_id: str, changes: Dict[str, Any]) -> Optional[Reminder]:
        changes = {key: _to_storage(value) for key, value in changes.items()}
        changes["updated_at"] = datetime.now(timezone.utc)
        try:
            row = await _collection(self.collection_name).find_one_and_update(
                {"id": reminder_id, "user_id": user_id},
                {"$set": changes},
                projection=_REMINDER_PROJECTION,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise PersistenceError(f"Reminder update failed: {exc}") from exc
        return Reminder.model_validate(row) if row else None

    async def delete_owned(self, reminder_id: str, user_id: str) -> bool:
        try:
            result = await _collection(self.collection_name).delete_one({"id": reminder_id, "user_id": user_id})
        except PyMongoError as exc:
            raise PersistenceError(f"Reminder delete failed: {exc}") from exc
        return result.deleted_count > 0

    @staticmethod
    def _new_row(draft: ReminderDraft, now: datetime) -> Dict[str, Any]:
        row = {key: _to_storage(value) for key, value in draft.model_dump().items()}
        row.update({"id": str(uuid.uuid4()), "snoozed_until": None, "created_at": now, "updated_at": now})
        return row


def _to_storage(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def order_by_request(documents: Iterable[Document], requested_ids: Sequence[str]) -> List[Document]:
    """Re-order looked-up documents to follow the request, keeping repeats."""

    by_id = {document.id: document for document in documents}
    return [by_id[document_id] for document_id in requested_ids if document_id in by_id]


document_repository = DocumentRepository()
reminder_repository = ReminderRepository()
