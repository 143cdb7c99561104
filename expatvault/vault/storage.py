"""Object storage abstraction for raw vault document bytes."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from google.cloud import storage as gcs_storage
from google.cloud.exceptions import GoogleCloudError, NotFound

from expatvault.core.config import settings

logger = logging.getLogger(__name__)

_S3_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


class ObjectStorageError(RuntimeError):
    """Raised when a document's bytes cannot be read from object storage."""


class ObjectNotFoundError(ObjectStorageError):
    """Raised when no object exists at the requested path."""


class ObjectStore(Protocol):
    async def download(self, path: str) -> bytes:
        ...


class ObjectStorageClient:
    """Read raw documents from S3, GCS, or local disk."""

    def __init__(self, backend: Optional[str] = None, local_root: Optional[Path] = None) -> None:
        self.backend = (backend or settings.STORAGE_BACKEND or "local").lower()
        self._s3 = None
        self._gcs_bucket = None
        self._local_root = Path(local_root or settings.LOCAL_STORAGE_PATH)

        if self.backend == "s3":
            self._s3 = boto3.client(
                "s3",
                region_name=settings.S3_REGION,
                endpoint_url=str(settings.S3_ENDPOINT_URL) if settings.S3_ENDPOINT_URL else None,
            )
        elif self.backend == "gcs":
            if settings.GOOGLE_SERVICE_ACCOUNT_FILE:
                client = gcs_storage.Client.from_service_account_json(str(settings.GOOGLE_SERVICE_ACCOUNT_FILE))
            else:
                client = gcs_storage.Client()
            self._gcs_bucket = client.bucket(settings.GCS_BUCKET_NAME or "")

    async def download(self, path: str) -> bytes:
        if not path:
            raise ObjectNotFoundError("Empty storage path")
        if self.backend == "s3":
            return await self._download_s3(path)
        if self.backend == "gcs":
            return await self._download_gcs(path)
        return await self._download_local(path)

    async def _download_s3(self, key: str) -> bytes:
        if not settings.S3_BUCKET_NAME or not self._s3:
            raise ObjectStorageError("S3 storage requested but configuration is incomplete")

        def fetch() -> bytes:
            try:
                response = self._s3.get_object(Bucket=settings.S3_BUCKET_NAME, Key=key)
                return response["Body"].read()
            except ClientError as exc:
                if exc.response.get("Error", {}).get("Code") in _S3_MISSING_CODES:
                    raise ObjectNotFoundError(f"s3://{settings.S3_BUCKET_NAME}/{key} not found") from exc
                raise ObjectStorageError(f"S3 download failed: {exc}") from exc
            except BotoCoreError as exc:
                raise ObjectStorageError(f"S3 download failed: {exc}") from exc

        return await asyncio.to_thread(fetch)

    async def _download_gcs(self, blob_name: str) -> bytes:
        if not settings.GCS_BUCKET_NAME or not self._gcs_bucket:
            raise ObjectStorageError("GCS storage requested but configuration is incomplete")

        def fetch() -> bytes:
            try:
                return self._gcs_bucket.blob(blob_name).download_as_bytes()
            except NotFound as exc:
                raise ObjectNotFoundError(f"gs://{settings.GCS_BUCKET_NAME}/{blob_name} not found") from exc
            except GoogleCloudError as exc:
                raise ObjectStorageError(f"GCS download failed: {exc}") from exc

        return await asyncio.to_thread(fetch)

    async def _download_local(self, relative_path: str) -> bytes:
        root = self._local_root.resolve()
        source = (root / relative_path).resolve()
        if root not in source.parents:
            raise ObjectNotFoundError(f"{relative_path} escapes the storage root")

        def read() -> bytes:
            try:
                with open(source, "rb") as handle:
                    return handle.read()
            except FileNotFoundError as exc:
                raise ObjectNotFoundError(f"{relative_path} not found") from exc
            except OSError as exc:
                raise ObjectStorageError(f"Local read failed: {exc}") from exc

        return await asyncio.to_thread(read)


_default_client: Optional[ObjectStorageClient] = None


def get_object_store() -> ObjectStorageClient:
    """Lazily build the process-wide storage client from settings."""

    global _default_client
    if _default_client is None:
        _default_client = ObjectStorageClient()
    return _default_client
