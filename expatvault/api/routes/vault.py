"""Vault document endpoints: bulk export, single download, reminder scheduling."""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from expatvault.api.dependencies import (
    get_current_user,
    get_document_repository,
    get_export_streamer,
    get_object_storage,
    get_reminder_scheduler,
)
from expatvault.core.exceptions import ApplicationError, NotFoundError
from expatvault.models import User
from expatvault.vault.export import BulkExportStreamer, sanitize_file_name
from expatvault.vault.reminders import ReminderScheduler
from expatvault.vault.repository import DocumentRepository
from expatvault.vault.storage import ObjectNotFoundError, ObjectStorageError, ObjectStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vault", tags=["vault"])


class BulkDownloadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_ids: List[str] = Field(..., alias="documentIds", min_length=1, description="Documents to export, in archive order")


class ScheduleRemindersRequest(BaseModel):
    """Classifier output to schedule from; falls back to the stored classification."""

    document_type: Optional[str] = None
    extracted_fields: Optional[Dict[str, Optional[str]]] = None


class ScheduleRemindersResponse(BaseModel):
    document_id: str
    created: int
    errors: int
    deadline_date: Optional[date] = None
    source_field: Optional[str] = None


@router.post(
    "/bulk-download",
    response_class=StreamingResponse,
    responses={status.HTTP_200_OK: {"content": {"application/zip": {}}}},
)
async def bulk_download(
    payload: BulkDownloadRequest,
    current_user: User = Depends(get_current_user),
    streamer: BulkExportStreamer = Depends(get_export_streamer),
) -> StreamingResponse:
    """
    Stream the requested documents as one ZIP archive.

    Documents that are not owned by the caller or are soft-deleted are
    ignored; a 404 is returned only when none remain. Documents whose bytes
    cannot be fetched are left out of the archive.
    """
    logger.info("Bulk download requested for %d document id(s) by %s", len(payload.document_ids), current_user.id)
    job = await streamer.prepare(payload.document_ids, current_user)
    headers = {
        "Content-Disposition": f'attachment; filename="{job.file_name}"',
        "Cache-Control": "no-cache",
    }
    return StreamingResponse(streamer.stream(job), media_type="application/zip", headers=headers)


@router.get("/documents/{document_id}/download")
async def download_document(
    document_id: str,
    current_user: User = Depends(get_current_user),
    documents: DocumentRepository = Depends(get_document_repository),
    storage: ObjectStore = Depends(get_object_storage),
) -> Response:
    """Return the raw bytes of a single owned document."""

    document = await documents.get_owned(document_id, current_user.id)
    if document is None:
        raise NotFoundError("Document not found")

    try:
        content = await storage.download(document.storage_path)
    except ObjectNotFoundError as exc:
        raise NotFoundError("File not found") from exc
    except ObjectStorageError as exc:
        logger.error("Error downloading %s from storage: %s", document.id, exc)
        raise ApplicationError("Failed to download file", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, code="storage_error") from exc

    return Response(
        content=content,
        media_type=document.mime_type,
        headers={
            "Content-Disposition": f'attachment; filename="{sanitize_file_name(document.file_name)}"',
            "Cache-Control": "private, max-age=3600",
        },
    )


@router.post("/documents/{document_id}/reminders", response_model=ScheduleRemindersResponse)
async def schedule_document_reminders(
    document_id: str,
    payload: Optional[ScheduleRemindersRequest] = None,
    current_user: User = Depends(get_current_user),
    documents: DocumentRepository = Depends(get_document_repository),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> ScheduleRemindersResponse:
    """Materialize the deadline reminder ladder for a classified document."""

    document = await documents.get_owned(document_id, current_user.id)
    if document is None:
        raise NotFoundError("Document not found")

    payload = payload or ScheduleRemindersRequest()
    document_type = payload.document_type or document.document_type
    fields = payload.extracted_fields if payload.extracted_fields is not None else document.extracted_fields

    result = await scheduler.schedule(document.id, current_user.id, document_type, fields)
    return ScheduleRemindersResponse(
        document_id=document.id,
        created=result.created,
        errors=result.errors,
        deadline_date=result.deadline_date,
        source_field=result.source_field,
    )
