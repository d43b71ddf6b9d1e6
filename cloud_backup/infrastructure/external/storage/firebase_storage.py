"""Firebase Storage (Cloud Storage bucket) object store over the GCS JSON API.

Writes use a resumable upload session: one POST opens the session, each
chunk is PUT with a Content-Range header, and the server answers 308 with
the persisted range until the last chunk completes the object. Objects
get a firebaseStorageDownloadTokens metadata entry so the same permanent
download URL a Firebase web client would get can be built without signing.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from datetime import datetime, timedelta
from typing import Any, BinaryIO
from urllib.parse import quote

import httpx

from cloud_backup.application.dtos.upload import StoredObject, WriteSnapshot
from cloud_backup.core.constants import RESUMABLE_CHUNK_GRANULARITY
from cloud_backup.infrastructure.exceptions import (
    StorageDeleteError,
    StorageException,
    StorageNotFoundError,
    StorageReadError,
    StorageUploadError,
)
from cloud_backup.infrastructure.external.storage.base import ObjectStoreBase, read_chunks
from cloud_backup.infrastructure.firebase._rest_client import get_access_token
from cloud_backup.shared.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)

STORAGE_SCOPE = "https://www.googleapis.com/auth/devstorage.read_write"
_API_BASE = "https://storage.googleapis.com/storage/v1"
_UPLOAD_BASE = "https://storage.googleapis.com/upload/storage/v1"
_DOWNLOAD_BASE = "https://firebasestorage.googleapis.com/v0"
_TOKEN_METADATA_KEY = "firebaseStorageDownloadTokens"


def _confirmed_bytes(resp: httpx.Response) -> int:
    """Bytes persisted so far from a 308 response ('Range: bytes=0-N'); 0 when absent."""
    header = resp.headers.get("Range")
    if not header:
        return 0
    _, _, end = header.partition("-")
    return int(end) + 1


def _parse_rfc3339(value: str | None) -> datetime | None:
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


class FirebaseStorageObjectStore(ObjectStoreBase):
    """Object store on a Firebase Storage bucket (implements IObjectStore).

    The locator is the object name inside the bucket, i.e. the storage path.
    """

    def __init__(
        self,
        bucket: str,
        credentials: Any,
        *,
        chunk_size: int = 8 * RESUMABLE_CHUNK_GRANULARITY,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        if chunk_size <= 0 or chunk_size % RESUMABLE_CHUNK_GRANULARITY:
            raise ValueError(
                f"chunk_size must be a positive multiple of {RESUMABLE_CHUNK_GRANULARITY}"
            )
        self.bucket = bucket
        self.chunk_size = chunk_size
        self._credentials = credentials
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _auth_headers(self) -> dict[str, str]:
        token = await asyncio.to_thread(get_access_token, self._credentials)
        return {"Authorization": f"Bearer {token}"}

    def _object_url(self, locator: str) -> str:
        return f"{_API_BASE}/b/{self.bucket}/o/{quote(locator, safe='')}"

    def download_url_for(self, locator: str, token: str) -> str:
        return (
            f"{_DOWNLOAD_BASE}/b/{self.bucket}/o/{quote(locator, safe='')}"
            f"?alt=media&token={token}"
        )

    async def _open_session(
        self,
        storage_path: str,
        total_bytes: int,
        content_type: str,
        download_token: str,
    ) -> str:
        headers = await self._auth_headers()
        headers["X-Upload-Content-Type"] = content_type
        headers["X-Upload-Content-Length"] = str(total_bytes)
        resp = await self._http.post(
            f"{_UPLOAD_BASE}/b/{self.bucket}/o",
            params={"uploadType": "resumable"},
            headers=headers,
            json={
                "name": storage_path,
                "contentType": content_type,
                "metadata": {_TOKEN_METADATA_KEY: download_token},
            },
        )
        session_uri = resp.headers.get("Location")
        if resp.status_code != 200 or not session_uri:
            raise StorageUploadError(
                storage_path, f"could not open upload session (HTTP {resp.status_code})"
            )
        return session_uri

    async def _cancel_session(self, session_uri: str) -> None:
        """Abandon a resumable session so no partial object is ever finalized."""
        try:
            await self._http.delete(session_uri)
        except httpx.HTTPError as e:
            logger.warning("Could not cancel upload session: %s", e)

    async def write_resumable(
        self,
        storage_path: str,
        file_data: BinaryIO,
        total_bytes: int,
        content_type: str,
    ) -> AsyncIterator[WriteSnapshot]:
        """Upload in granular chunks, yielding after every chunk the server confirms."""
        download_token = str(uuid.uuid4())
        try:
            session_uri = await self._open_session(
                storage_path, total_bytes, content_type, download_token
            )
        except httpx.HTTPError as e:
            raise StorageUploadError(storage_path, str(e)) from e

        buffer = bytearray()
        offset = 0
        finished = False
        try:
            async for chunk in read_chunks(file_data, total_bytes, self.chunk_size, storage_path):
                buffer += chunk
                is_last = offset + len(buffer) == total_bytes
                while buffer and (is_last or len(buffer) >= self.chunk_size):
                    send_len = (
                        len(buffer)
                        if is_last
                        else len(buffer) - len(buffer) % RESUMABLE_CHUNK_GRANULARITY
                    )
                    end = offset + send_len - 1
                    resp = await self._http.put(
                        session_uri,
                        content=bytes(buffer[:send_len]),
                        headers={"Content-Range": f"bytes {offset}-{end}/{total_bytes}"},
                    )
                    if resp.status_code in (200, 201):
                        confirmed = total_bytes
                        finished = True
                    elif resp.status_code == 308:
                        confirmed = _confirmed_bytes(resp)
                    else:
                        raise StorageUploadError(
                            storage_path, f"chunk rejected (HTTP {resp.status_code})"
                        )
                    if confirmed <= offset:
                        raise StorageUploadError(storage_path, "server made no progress")
                    del buffer[: confirmed - offset]
                    offset = confirmed
                    yield WriteSnapshot(offset, total_bytes)
                    if finished:
                        break
            if not finished:
                raise StorageUploadError(storage_path, "upload session did not complete")
        except (asyncio.CancelledError, GeneratorExit):
            await self._cancel_session(session_uri)
            raise
        except StorageException:
            await self._cancel_session(session_uri)
            raise
        except Exception as e:
            await self._cancel_session(session_uri)
            raise StorageUploadError(storage_path, str(e)) from e
        yield WriteSnapshot(
            total_bytes,
            total_bytes,
            locator=storage_path,
            download_url=self.download_url_for(storage_path, download_token),
        )

    async def delete(self, locator: str) -> bool:
        """Delete the object. Returns False if it was already gone."""
        try:
            resp = await self._http.delete(
                self._object_url(locator), headers=await self._auth_headers()
            )
        except httpx.HTTPError as e:
            raise StorageDeleteError(locator, str(e)) from e
        if resp.status_code == 404:
            return False
        if resp.status_code not in (200, 204):
            raise StorageDeleteError(locator, f"HTTP {resp.status_code}")
        return True

    async def _get_metadata(self, locator: str) -> dict | None:
        try:
            resp = await self._http.get(
                self._object_url(locator), headers=await self._auth_headers()
            )
        except httpx.HTTPError as e:
            raise StorageReadError(locator, str(e)) from e
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise StorageReadError(locator, f"HTTP {resp.status_code}")
        return resp.json()

    @staticmethod
    def _stored_object(item: dict) -> StoredObject:
        return StoredObject(
            locator=item["name"],
            size_bytes=int(item.get("size", 0)),
            updated_at=_parse_rfc3339(item.get("updated")),
        )

    async def stat(self, locator: str) -> StoredObject | None:
        meta = await self._get_metadata(locator)
        return self._stored_object(meta) if meta is not None else None

    async def list_namespace(self, prefix: str) -> list[StoredObject]:
        """List every object whose name starts with prefix (follows nextPageToken)."""
        found: list[StoredObject] = []
        params: dict[str, str] = {"prefix": prefix}
        while True:
            try:
                resp = await self._http.get(
                    f"{_API_BASE}/b/{self.bucket}/o",
                    params=params,
                    headers=await self._auth_headers(),
                )
            except httpx.HTTPError as e:
                raise StorageReadError(prefix, str(e)) from e
            if resp.status_code != 200:
                raise StorageReadError(prefix, f"HTTP {resp.status_code}")
            data = resp.json()
            found.extend(self._stored_object(item) for item in data.get("items", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                break
            params["pageToken"] = page_token
        return sorted(found, key=lambda o: o.locator)

    async def generate_download_url(
        self,
        locator: str,
        expiration: timedelta = timedelta(hours=1),
    ) -> str:
        """Return the token download URL (does not expire; expiration is ignored)."""
        meta = await self._get_metadata(locator)
        if meta is None:
            raise StorageNotFoundError(locator)
        tokens = (meta.get("metadata") or {}).get(_TOKEN_METADATA_KEY)
        if not tokens:
            raise StorageReadError(locator, "object has no download token")
        return self.download_url_for(locator, tokens.split(",")[0])
