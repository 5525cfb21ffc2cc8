import logging
import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from filedrive.core.config import Settings

logger = logging.getLogger(__name__)

S3_DELETE_BATCH_SIZE = 1000


class BlobStoreError(Exception):
    """The blob service failed; the object may or may not exist."""


class BlobNotFoundError(BlobStoreError):
    """The blob service answered, and the object does not exist."""


@dataclass(slots=True, frozen=True)
class BlobUpload:
    blob_id: str
    url: str
    size: int
    format: str
    original_name: str
    created_at: datetime


class BlobStore(Protocol):
    def upload(self, data: bytes, filename: str, content_type: str | None = None) -> BlobUpload: ...

    def delete(self, blob_id: str) -> None: ...

    def delete_batch(self, blob_ids: Iterable[str]) -> None: ...

    def list_blobs(self) -> Iterable[tuple[str, datetime]]: ...


def file_format(filename: str) -> str:
    suffix = Path(filename or "").suffix.lower().lstrip(".")
    return suffix or "bin"


def new_blob_id(filename: str) -> str:
    return f"{uuid.uuid4().hex}.{file_format(filename)}"


class LocalBlobStore:
    """Blob store backed by a directory on local disk."""

    def __init__(self, root: str | Path, base_url: str = "/blobs") -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _path(self, blob_id: str) -> Path:
        if not blob_id or "/" in blob_id or "\\" in blob_id or blob_id.startswith("."):
            raise BlobNotFoundError(f"Invalid blob id: {blob_id!r}")
        return self.root / blob_id

    def upload(self, data: bytes, filename: str, content_type: str | None = None) -> BlobUpload:
        blob_id = new_blob_id(filename)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self._path(blob_id).write_bytes(data)
        except OSError as exc:
            logger.exception("blob_upload_failed", extra={"blob_id": blob_id})
            raise BlobStoreError(f"Failed to store {filename}") from exc
        logger.info("blob_uploaded", extra={"blob_id": blob_id, "size": len(data)})
        return BlobUpload(
            blob_id=blob_id,
            url=f"{self.base_url}/{blob_id}",
            size=len(data),
            format=file_format(filename),
            original_name=filename,
            created_at=datetime.now(timezone.utc),
        )

    def delete(self, blob_id: str) -> None:
        try:
            self._path(blob_id).unlink(missing_ok=True)
        except OSError as exc:
            logger.exception("blob_delete_failed", extra={"blob_id": blob_id})
            raise BlobStoreError(f"Failed to delete blob {blob_id}") from exc
        logger.info("blob_deleted", extra={"blob_id": blob_id})

    def delete_batch(self, blob_ids: Iterable[str]) -> None:
        for blob_id in blob_ids:
            try:
                self.delete(blob_id)
            except BlobNotFoundError:
                logger.warning("blob_missing", extra={"blob_id": blob_id})

    def list_blobs(self) -> Iterator[tuple[str, datetime]]:
        if not self.root.is_dir():
            return
        for path in self.root.iterdir():
            if path.is_file():
                yield path.name, datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


class S3BlobStore:
    """Blob store backed by an S3-compatible bucket."""

    def __init__(self, bucket: str, client: Any | None = None, region: str = "us-east-1", **client_kwargs: Any) -> None:
        self.bucket = bucket
        self.client = client or boto3.client("s3", region_name=region, **client_kwargs)

    def _url(self, key: str) -> str:
        endpoint = self.client.meta.endpoint_url.rstrip("/")
        return f"{endpoint}/{self.bucket}/{key}"

    def upload(self, data: bytes, filename: str, content_type: str | None = None) -> BlobUpload:
        key = new_blob_id(filename)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("blob_upload_failed", extra={"blob_id": key})
            raise BlobStoreError(f"Failed to store {filename}") from exc
        logger.info("blob_uploaded", extra={"blob_id": key, "size": len(data)})
        return BlobUpload(
            blob_id=key,
            url=self._url(key),
            size=len(data),
            format=file_format(filename),
            original_name=filename,
            created_at=datetime.now(timezone.utc),
        )

    def delete(self, blob_id: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=blob_id)
        except (BotoCoreError, ClientError) as exc:
            logger.exception("blob_delete_failed", extra={"blob_id": blob_id})
            raise BlobStoreError(f"Failed to delete blob {blob_id}") from exc
        logger.info("blob_deleted", extra={"blob_id": blob_id})

    def delete_batch(self, blob_ids: Iterable[str]) -> None:
        keys = list(blob_ids)
        for start in range(0, len(keys), S3_DELETE_BATCH_SIZE):
            chunk = keys[start : start + S3_DELETE_BATCH_SIZE]
            try:
                response = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": key} for key in chunk], "Quiet": True},
                )
            except (BotoCoreError, ClientError) as exc:
                logger.exception("blob_batch_delete_failed", extra={"count": len(chunk)})
                raise BlobStoreError("Failed to delete blobs") from exc
            errors = response.get("Errors", [])
            if errors:
                logger.error("blob_batch_delete_partial", extra={"failed": [e.get("Key") for e in errors]})
                raise BlobStoreError(f"Failed to delete {len(errors)} blob(s)")
        logger.info("blobs_deleted", extra={"count": len(keys)})

    def list_blobs(self) -> Iterator[tuple[str, datetime]]:
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket):
                for item in page.get("Contents", []):
                    yield item["Key"], item["LastModified"]
        except (BotoCoreError, ClientError) as exc:
            raise BlobStoreError("Failed to list blobs") from exc


def build_blob_store(settings: Settings) -> BlobStore:
    if settings.blob_backend == "s3":
        if not settings.s3_bucket_name:
            raise ValueError("S3_BUCKET_NAME is not configured.")
        return S3BlobStore(
            settings.s3_bucket_name,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
        )
    return LocalBlobStore(settings.blob_dir, settings.blob_base_url)
