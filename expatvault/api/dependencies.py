from __future__ import annotations

from fastapi import Depends

from expatvault.api.security import authenticate_user
from expatvault.models import User
from expatvault.vault.export import BulkExportStreamer, bulk_export_streamer
from expatvault.vault.reminders import ReminderScheduler, ReminderService, reminder_scheduler, reminder_service
from expatvault.vault.repository import DocumentRepository, document_repository
from expatvault.vault.storage import ObjectStore, get_object_store


async def get_current_user(user: User = Depends(authenticate_user)) -> User:
    return user


def get_document_repository() -> DocumentRepository:
    return document_repository


def get_object_storage() -> ObjectStore:
    return get_object_store()


def get_export_streamer() -> BulkExportStreamer:
    return bulk_export_streamer


def get_reminder_scheduler() -> ReminderScheduler:
    return reminder_scheduler


def get_reminder_service() -> ReminderService:
    return reminder_service
