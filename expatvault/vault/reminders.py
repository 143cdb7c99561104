"""Reminder ladder materialization and user-driven reminder actions."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Mapping, Optional

from expatvault.core.exceptions import NotFoundError, PersistenceError, ValidationError
from expatvault.models import (
    REMINDER_LADDER,
    Reminder,
    ReminderDocument,
    ReminderDraft,
    ReminderStatus,
    ReminderView,
    User,
)
from expatvault.models.document import Document, DocumentType
from expatvault.utils.audit import audit_log
from expatvault.utils.monitoring import record_reminders
from expatvault.vault.clock import Clock, utc_now
from expatvault.vault.deadlines import DeadlineResolver, deadline_resolver
from expatvault.vault.repository import (
    DocumentStore,
    ReminderRepository,
    ReminderStore,
    document_repository,
    reminder_repository,
)

logger = logging.getLogger(__name__)

MIN_SNOOZE_DAYS = 1
MAX_SNOOZE_DAYS = 30


def deadline_instant(deadline: date) -> datetime:
    """Deadlines are calendar dates; they fall due at midnight UTC."""

    return datetime.combine(deadline, time.min, tzinfo=timezone.utc)


def build_ladder(document_id: str, user_id: str, deadline: datetime, now: datetime) -> List[ReminderDraft]:
    """Ladder entries whose trigger time is still strictly ahead of `now`."""

    if deadline <= now:
        return []
    drafts = []
    for reminder_type in REMINDER_LADDER:
        reminder_date = deadline - timedelta(days=reminder_type.offset_days)
        if reminder_date <= now:
            continue
        drafts.append(
            ReminderDraft(
                document_id=document_id,
                user_id=user_id,
                reminder_type=reminder_type,
                reminder_date=reminder_date,
                deadline_date=deadline,
            )
        )
    return drafts


@dataclass
class ReminderScheduleResult:
    created: int = 0
    errors: int = 0
    deadline_date: Optional[date] = None
    source_field: Optional[str] = None


class ReminderScheduler:
    """Derive and persist the reminder ladder for one classified document.

    `schedule` never raises: every failure is folded into the returned
    `created` / `errors` counts and logged.
    """

    def __init__(
        self,
        store: Optional[ReminderStore] = None,
        resolver: Optional[DeadlineResolver] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store or reminder_repository
        self.resolver = resolver or deadline_resolver
        self.clock = clock

    async def schedule(
        self,
        document_id: str,
        user_id: str,
        document_type: DocumentType | str | None,
        fields: Optional[Mapping[str, Optional[str]]],
    ) -> ReminderScheduleResult:
        try:
            result = await self._schedule(document_id, user_id, document_type, fields)
        except Exception:
            logger.exception("Unexpected error creating reminders for document %s", document_id)
            result = ReminderScheduleResult(created=0, errors=1)
        record_reminders(result.created, result.errors)
        return result

    async def _schedule(
        self,
        document_id: str,
        user_id: str,
        document_type: DocumentType | str | None,
        fields: Optional[Mapping[str, Optional[str]]],
    ) -> ReminderScheduleResult:
        resolution = self.resolver.resolve(document_type, fields)
        if not resolution.found:
            logger.info("No deadline date found for document %s (type: %s)", document_id, document_type)
            return ReminderScheduleResult(source_field=resolution.source_field_name)

        result = ReminderScheduleResult(
            deadline_date=resolution.deadline_date,
            source_field=resolution.source_field_name,
        )
        now = self.clock()
        deadline = deadline_instant(resolution.deadline_date)
        if deadline <= now:
            logger.info("Deadline %s for document %s is in the past, skipping reminders", deadline.isoformat(), document_id)
            return result

        drafts = build_ladder(document_id, user_id, deadline, now)
        if not drafts:
            logger.info("No reminders to create for document %s (all reminder dates are in the past)", document_id)
            return result

        try:
            await self.store.insert_batch(drafts)
        except PersistenceError as exc:
            logger.error("Failed to persist %d reminder(s) for document %s: %s", len(drafts), document_id, exc.message)
            result.errors = len(drafts)
            return result

        result.created = len(drafts)
        logger.info("Created %d reminder(s) for document %s", result.created, document_id)
        return result

    async def schedule_document(self, document: Document) -> ReminderScheduleResult:
        return await self.schedule(document.id, document.user_id, document.document_type, document.extracted_fields)


def days_until(deadline: datetime, now: datetime) -> int:
    return math.ceil((deadline - now).total_seconds() / 86400)


def document_download_url(document_id: str) -> str:
    return f"/api/vault/documents/{document_id}/download"


class ReminderService:
    """User actions over existing reminders: list, snooze, complete, delete."""

    def __init__(
        self,
        repository: Optional[ReminderRepository] = None,
        documents: Optional[DocumentStore] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.repository = repository or reminder_repository
        self.documents = documents or document_repository
        self.clock = clock

    async def list(self, user: User, status: Optional[ReminderStatus] = None) -> List[ReminderView]:
        now = self.clock()
        released = await self.repository.release_snoozed(user.id, now)
        if released:
            logger.info("Returned %d snoozed reminder(s) to pending for user %s", released, user.id)
        reminders = await self.repository.list_for_user(user.id, status)
        summaries = await self._document_summaries(reminders, user)
        views = []
        for reminder in reminders:
            remaining = days_until(reminder.deadline_date, now)
            views.append(
                ReminderView(
                    **reminder.model_dump(),
                    days_remaining=remaining,
                    is_overdue=remaining < 0,
                    document=summaries.get(reminder.document_id),
                )
            )
        return views

    async def _document_summaries(self, reminders: List[Reminder], user: User) -> Dict[str, ReminderDocument]:
        if not reminders:
            return {}
        document_ids = list(dict.fromkeys(reminder.document_id for reminder in reminders))
        try:
            documents = await self.documents.find_owned(document_ids, user.id)
        except PersistenceError as exc:
            logger.warning("Could not load documents for reminders of user %s: %s", user.id, exc.message)
            return {}
        return {
            document.id: ReminderDocument(
                id=document.id,
                file_name=document.file_name,
                document_type=document.document_type,
                download_url=document_download_url(document.id),
            )
            for document in documents
        }

    @audit_log
    async def snooze(self, *, reminder_id: str, days: Optional[int], current_user: User) -> Reminder:
        if await self.repository.get_owned(reminder_id, current_user.id) is None:
            raise NotFoundError("Reminder not found")
        if days is None or isinstance(days, bool) or not MIN_SNOOZE_DAYS <= days <= MAX_SNOOZE_DAYS:
            raise ValidationError(f"Days must be between {MIN_SNOOZE_DAYS} and {MAX_SNOOZE_DAYS}")
        snoozed_until = self.clock() + timedelta(days=days)
        return await self._update(
            reminder_id,
            current_user,
            {"status": ReminderStatus.SNOOZED, "snoozed_until": snoozed_until},
        )

    @audit_log
    async def complete(self, *, reminder_id: str, current_user: User) -> Reminder:
        return await self._update(reminder_id, current_user, {"status": ReminderStatus.COMPLETED})

    @audit_log
    async def delete(self, *, reminder_id: str, current_user: User) -> None:
        if not await self.repository.delete_owned(reminder_id, current_user.id):
            raise NotFoundError("Reminder not found")

    async def _update(self, reminder_id: str, user: User, changes: dict) -> Reminder:
        updated = await self.repository.update_owned(reminder_id, user.id, changes)
        if updated is None:
            raise NotFoundError("Reminder not found")
        return updated


reminder_scheduler = ReminderScheduler()
reminder_service = ReminderService()
