"""S3-compatible object storage (AWS S3, MinIO, etc.) with multipart writes and presigned URLs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from datetime import timedelta
from typing import BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from cloud_backup.application.dtos.upload import StoredObject, WriteSnapshot
from cloud_backup.core.constants import S3_MIN_PART_SIZE
from cloud_backup.infrastructure.exceptions import (
    StorageDeleteError,
    StorageException,
    StorageNotFoundError,
    StorageReadError,
    StorageUploadError,
)
from cloud_backup.infrastructure.external.storage.base import ObjectStoreBase, read_chunks
from cloud_backup.shared.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _is_not_found(e: ClientError) -> bool:
    return e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES


class S3ObjectStore(ObjectStoreBase):
    """S3-compatible storage with server-side encryption and presigned URLs.

    Uses boto3 (sync) via asyncio.to_thread for async API. Compatible with
    AWS S3, MinIO, DigitalOcean Spaces. Writes are multipart uploads: each
    part is progress, and an aborted write calls AbortMultipartUpload so no
    object appears. The locator is the object key.
    """

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        part_size: int = S3_MIN_PART_SIZE,
        client=None,
    ) -> None:
        """Initialize S3 client.

        Args:
            bucket: Bucket name.
            region: AWS region.
            endpoint_url: Custom endpoint (MinIO/Spaces).
            access_key: Optional; uses env/IAM if not set.
            secret_key: Optional.
            part_size: Multipart part size; raised to the 5 MiB S3 minimum.
            client: Pre-built boto3 S3 client (tests).
        """
        self.bucket = bucket
        self.part_size = max(part_size, S3_MIN_PART_SIZE)
        if client is None:
            extra = {} if endpoint_url is None else {"endpoint_url": endpoint_url}
            client = boto3.client(
                "s3",
                region_name=region,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                **extra,
            )
        self._client = client

    async def _abort(self, storage_path: str, upload_id: str) -> None:
        try:
            await asyncio.to_thread(
                self._client.abort_multipart_upload,
                Bucket=self.bucket,
                Key=storage_path,
                UploadId=upload_id,
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning("Could not abort multipart upload %s: %s", storage_path, e)

    async def write_resumable(
        self,
        storage_path: str,
        file_data: BinaryIO,
        total_bytes: int,
        content_type: str,
    ) -> AsyncIterator[WriteSnapshot]:
        """Multipart upload; yields after each part."""
        try:
            created = await asyncio.to_thread(
                self._client.create_multipart_upload,
                Bucket=self.bucket,
                Key=storage_path,
                ContentType=content_type,
                ServerSideEncryption="AES256",
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageUploadError(storage_path, str(e)) from e
        upload_id = created["UploadId"]

        parts: list[dict] = []
        transferred = 0
        try:
            async for chunk in read_chunks(file_data, total_bytes, self.part_size, storage_path):
                part_number = len(parts) + 1
                resp = await asyncio.to_thread(
                    self._client.upload_part,
                    Bucket=self.bucket,
                    Key=storage_path,
                    UploadId=upload_id,
                    PartNumber=part_number,
                    Body=chunk,
                )
                parts.append({"ETag": resp["ETag"], "PartNumber": part_number})
                transferred += len(chunk)
                yield WriteSnapshot(transferred, total_bytes)
            await asyncio.to_thread(
                self._client.complete_multipart_upload,
                Bucket=self.bucket,
                Key=storage_path,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except (asyncio.CancelledError, GeneratorExit):
            await self._abort(storage_path, upload_id)
            raise
        except StorageException:
            await self._abort(storage_path, upload_id)
            raise
        except Exception as e:
            await self._abort(storage_path, upload_id)
            raise StorageUploadError(storage_path, str(e)) from e
        yield WriteSnapshot(transferred, total_bytes, locator=storage_path)

    async def delete(self, locator: str) -> bool:
        """Delete object. Returns True if deleted, False if it did not exist."""
        def _delete() -> bool:
            try:
                self._client.head_object(Bucket=self.bucket, Key=locator)
            except ClientError as e:
                if _is_not_found(e):
                    return False
                raise
            self._client.delete_object(Bucket=self.bucket, Key=locator)
            return True

        try:
            return await asyncio.to_thread(_delete)
        except Exception as e:
            raise StorageDeleteError(locator, str(e)) from e

    async def stat(self, locator: str) -> StoredObject | None:
        """Return size and last-modified, or None if missing."""
        def _head() -> StoredObject | None:
            try:
                head = self._client.head_object(Bucket=self.bucket, Key=locator)
            except ClientError as e:
                if _is_not_found(e):
                    return None
                raise
            return StoredObject(
                locator=locator,
                size_bytes=head["ContentLength"],
                updated_at=ensure_utc(head.get("LastModified")),
            )

        try:
            return await asyncio.to_thread(_head)
        except Exception as e:
            raise StorageReadError(locator, str(e)) from e

    async def list_namespace(self, prefix: str) -> list[StoredObject]:
        """List objects under prefix using the ListObjectsV2 paginator."""
        def _list() -> list[StoredObject]:
            paginator = self._client.get_paginator("list_objects_v2")
            found: list[StoredObject] = []
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    found.append(
                        StoredObject(
                            locator=item["Key"],
                            size_bytes=item["Size"],
                            updated_at=ensure_utc(item.get("LastModified")),
                        )
                    )
            return sorted(found, key=lambda o: o.locator)

        try:
            return await asyncio.to_thread(_list)
        except Exception as e:
            raise StorageReadError(prefix, str(e)) from e

    async def generate_download_url(
        self,
        locator: str,
        expiration: timedelta = timedelta(hours=1),
    ) -> str:
        """Return presigned GET URL."""
        def _presign() -> str:
            try:
                self._client.head_object(Bucket=self.bucket, Key=locator)
            except ClientError as e:
                if _is_not_found(e):
                    raise StorageNotFoundError(locator) from e
                raise
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": locator},
                ExpiresIn=int(expiration.total_seconds()),
            )

        try:
            return await asyncio.to_thread(_presign)
        except StorageNotFoundError:
            raise
        except Exception as e:
            raise StorageReadError(locator, str(e)) from e
