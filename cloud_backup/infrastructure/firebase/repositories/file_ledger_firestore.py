"""Firestore-backed file ledger (implements IFileLedger)."""

from __future__ import annotations

import logging

import httpx
from google.auth.exceptions import GoogleAuthError

from cloud_backup.application.dtos.file_record import FileRecord, FileRecordCreate
from cloud_backup.domain.exceptions import (
    RecordNotFoundException,
    StoreUnavailableException,
)
from cloud_backup.infrastructure.firebase._rest_client import (
    DocumentExistsError,
    FirestoreRESTClient,
)
from cloud_backup.infrastructure.firebase.collections import COLLECTION_FILES
from cloud_backup.shared.utils.datetime import ensure_utc
from cloud_backup.shared.utils.generators import generate_cuid

logger = logging.getLogger(__name__)


class FirestoreFileLedger:
    """File ledger using Firestore. Same contract as SqlFileLedger.

    Document id is the record id; fields: name, size_bytes, locator,
    owner_id, created_at, content_type, download_url.
    """

    def __init__(self, client: FirestoreRESTClient) -> None:
        self._client = client
        self._coll = client.collection(COLLECTION_FILES)

    def _to_result(self, doc_id: str, data: dict) -> FileRecord:
        return FileRecord(
            id=doc_id,
            name=data.get("name", ""),
            size_bytes=int(data.get("size_bytes", 0)),
            locator=data.get("locator", ""),
            owner_id=data.get("owner_id", ""),
            created_at=ensure_utc(data.get("created_at")),
            content_type=data.get("content_type", ""),
            download_url=data.get("download_url"),
        )

    async def list_for(self, owner_id: str) -> list[FileRecord]:
        """Return owner's records newest first (server-side filter, single runQuery)."""
        q = self._coll.where("owner_id", "==", owner_id).order_by("created_at", "DESCENDING")
        try:
            return [self._to_result(s.id, s.to_dict()) async for s in q.stream()]
        except (httpx.HTTPError, GoogleAuthError) as e:
            raise StoreUnavailableException(str(e)) from e

    async def get_by_id(self, record_id: str, owner_id: str) -> FileRecord | None:
        """Return record by ID if it belongs to owner_id."""
        try:
            doc = await self._coll.document(record_id).get()
        except (httpx.HTTPError, GoogleAuthError) as e:
            raise StoreUnavailableException(str(e)) from e
        if not doc:
            return None
        data = doc.to_dict()
        if data.get("owner_id") != owner_id:
            return None
        return self._to_result(doc.id, data)

    async def insert(self, record: FileRecordCreate) -> FileRecord:
        """Create the record document under a new CUID; return the stored record."""
        record_id = generate_cuid()
        data = {
            "name": record.name,
            "size_bytes": record.size_bytes,
            "locator": record.locator,
            "owner_id": record.owner_id,
            "created_at": record.created_at,
            "content_type": record.content_type,
            "download_url": record.download_url,
        }
        try:
            await self._coll.create(record_id, data)
        except (httpx.HTTPError, GoogleAuthError, DocumentExistsError) as e:
            raise StoreUnavailableException(str(e)) from e
        return self._to_result(record_id, data)

    async def delete_by_id(self, record_id: str, owner_id: str) -> None:
        """Delete the record if owner_id owns it; RecordNotFoundException otherwise."""
        if await self.get_by_id(record_id, owner_id) is None:
            raise RecordNotFoundException(record_id)
        try:
            deleted = await self._coll.document(record_id).delete(must_exist=True)
        except (httpx.HTTPError, GoogleAuthError) as e:
            raise StoreUnavailableException(str(e)) from e
        if not deleted:
            raise RecordNotFoundException(record_id)
