"""Bulk export of vault documents as a streamed ZIP archive.

The archive is assembled one document at a time: each document's bytes are
fetched, compressed into a single entry, and the encoded bytes are handed to
the response before the next fetch starts. Peak memory is therefore one
document plus the encoder's buffer.

Two failure classes are kept apart:

* a document whose bytes cannot be fetched is logged and left out, the
  export carries on;
* a failure of the archive encoder itself raises `ArchiveStructuralError`
  from inside the streaming body. Headers are already on the wire by then,
  so the only recourse is aborting the transport; the client sees a broken
  download rather than a truncated archive that looks complete.
"""

from __future__ import annotations

import asyncio
import logging
import re
import zipfile
import zlib
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import PurePosixPath
from typing import AsyncIterator, List, Optional, Sequence, Set

from expatvault.core.config import settings
from expatvault.core.exceptions import ArchiveStructuralError, NoDocumentsFound
from expatvault.models import Document, User
from expatvault.utils.monitoring import record_export_entry
from expatvault.vault.clock import Clock, utc_now
from expatvault.vault.repository import DocumentStore, document_repository, order_by_request
from expatvault.vault.storage import ObjectStorageError, ObjectStore, get_object_store

logger = logging.getLogger(__name__)

MAX_ENTRY_NAME_LENGTH = 255
SKIPPED_MANIFEST_NAME = "_skipped_documents.txt"

_INVALID_NAME_CHARS = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE = re.compile(r"\s+")
_ENCODER_ERRORS = (OSError, ValueError, zlib.error, zipfile.LargeZipFile)


def sanitize_file_name(file_name: str) -> str:
    """Make a display name safe to use as an archive entry name."""

    cleaned = _INVALID_NAME_CHARS.sub("_", file_name)
    cleaned = _WHITESPACE.sub("_", cleaned)
    return cleaned[:MAX_ENTRY_NAME_LENGTH]


def archive_file_name(day: date) -> str:
    return f"documents-{day.isoformat()}.zip"


def _deduplicate(name: str, used: Set[str]) -> str:
    if name not in used:
        return name
    path = PurePosixPath(name)
    suffix = path.suffix
    stem = name[: len(name) - len(suffix)] if suffix else name
    counter = 2
    while True:
        tag = f"_{counter}"
        budget = MAX_ENTRY_NAME_LENGTH - len(tag)
        tail = suffix[:budget]
        candidate = f"{stem[: max(0, budget - len(tail))]}{tag}{tail}"
        if candidate not in used:
            return candidate
        counter += 1


class _ChunkSink:
    """Write-only file object the ZIP encoder writes into.

    Encoded bytes accumulate until the streamer drains them into the
    response. Once discarded, writes are dropped so nothing produced after
    an abort can reach a closed response.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self.discarded = False

    def write(self, data: bytes) -> int:
        if not self.discarded:
            self._buffer.extend(data)
        return len(data)

    def flush(self) -> None:
        return None

    def drain(self) -> bytes:
        chunk = bytes(self._buffer)
        self._buffer.clear()
        return chunk

    def discard(self) -> None:
        self.discarded = True
        self._buffer.clear()


@dataclass
class ArchiveJob:
    """One export request: the documents to pack and what became of them."""

    documents: List[Document]
    file_name: str
    entries: List[str] = field(default_factory=list)
    skipped: List[Document] = field(default_factory=list)


class BulkExportStreamer:
    def __init__(
        self,
        documents: Optional[DocumentStore] = None,
        store: Optional[ObjectStore] = None,
        compression_level: Optional[int] = None,
        include_skipped_manifest: Optional[bool] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.documents = documents or document_repository
        self._store = store
        self.compression_level = (
            settings.EXPORT_COMPRESSION_LEVEL if compression_level is None else compression_level
        )
        self.include_skipped_manifest = (
            settings.EXPORT_INCLUDE_SKIPPED_MANIFEST if include_skipped_manifest is None else include_skipped_manifest
        )
        self.clock = clock

    @property
    def store(self) -> ObjectStore:
        if self._store is None:
            self._store = get_object_store()
        return self._store

    async def prepare(self, document_ids: Sequence[str], user: User) -> ArchiveJob:
        """Resolve the request against the caller's live documents.

        Runs before any response bytes are produced so that an empty
        result can still be reported as a regular 404.
        """

        found = await self.documents.find_owned(document_ids, user.id)
        ordered = order_by_request(found, document_ids)
        if not ordered:
            raise NoDocumentsFound("No valid documents found")
        logger.info("Found %d document(s) to export for user %s", len(ordered), user.id)
        return ArchiveJob(documents=ordered, file_name=archive_file_name(self.clock().date()))

    async def stream(self, job: ArchiveJob) -> AsyncIterator[bytes]:
        sink = _ChunkSink()
        try:
            archive = zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=self.compression_level)
        except _ENCODER_ERRORS as exc:
            raise ArchiveStructuralError("Could not open archive encoder") from exc

        used_names: Set[str] = set()
        finalized = False
        try:
            for document in job.documents:
                try:
                    payload = await self.store.download(document.storage_path)
                except ObjectStorageError as exc:
                    logger.warning("Failed to download %s (%s): %s", document.file_name, document.id, exc)
                    job.skipped.append(document)
                    record_export_entry("skipped")
                    continue

                name = _deduplicate(sanitize_file_name(document.file_name) or f"document-{document.id}", used_names)
                await self._append(archive, name, payload)
                used_names.add(name)
                job.entries.append(name)
                record_export_entry("added")
                logger.debug("Added %s to archive", name)

                chunk = sink.drain()
                if chunk:
                    yield chunk

            if self.include_skipped_manifest and job.skipped:
                await self._append(archive, SKIPPED_MANIFEST_NAME, self._manifest(job.skipped))

            try:
                archive.close()
            except _ENCODER_ERRORS as exc:
                raise ArchiveStructuralError("Could not finalize archive") from exc
            finalized = True
            logger.info(
                "Archive %s complete: %d entr(ies), %d skipped", job.file_name, len(job.entries), len(job.skipped)
            )

            chunk = sink.drain()
            if chunk:
                yield chunk
        finally:
            if not finalized:
                self._abandon(archive, sink, job)

    async def _append(self, archive: zipfile.ZipFile, name: str, payload: bytes) -> None:
        info = zipfile.ZipInfo(filename=name, date_time=self._entry_timestamp())
        info.compress_type = zipfile.ZIP_DEFLATED
        info.external_attr = 0o644 << 16
        try:
            await asyncio.to_thread(archive.writestr, info, payload, compresslevel=self.compression_level)
        except _ENCODER_ERRORS as exc:
            raise ArchiveStructuralError(f"Could not write archive entry {name!r}") from exc

    def _entry_timestamp(self) -> tuple:
        now: datetime = self.clock()
        return (max(now.year, 1980),) + tuple(now.timetuple()[1:6])

    @staticmethod
    def _manifest(skipped: Sequence[Document]) -> bytes:
        lines = ["The following documents could not be retrieved and are not part of this archive:", ""]
        lines.extend(f"{document.id}\t{document.file_name}" for document in skipped)
        return ("\n".join(lines) + "\n").encode("utf-8")

    @staticmethod
    def _abandon(archive: zipfile.ZipFile, sink: _ChunkSink, job: ArchiveJob) -> None:
        logger.warning(
            "Archive %s abandoned after %d of %d document(s)",
            job.file_name,
            len(job.entries) + len(job.skipped),
            len(job.documents),
        )
        sink.discard()
        try:
            archive.close()
        except _ENCODER_ERRORS as exc:
            logger.debug("Archive encoder did not close cleanly after abort: %s", exc)


bulk_export_streamer = BulkExportStreamer()
