"""File queries: the caller's file list, usage totals and download URLs."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from cloud_backup.application.dtos.file_record import StorageUsage
from cloud_backup.domain.exceptions import AuthorizationException, RecordNotFoundException

if TYPE_CHECKING:
    from cloud_backup.application.dtos.file_record import FileRecord
    from cloud_backup.application.dtos.session import Session
    from cloud_backup.application.interfaces.repositories import IFileLedger
    from cloud_backup.application.interfaces.storage import IObjectStore
    from cloud_backup.application.services.session_gate import SessionGate


class FileQueryService:
    """Single responsibility: read-side views over the ledger for the live session."""

    def __init__(
        self,
        session_gate: SessionGate,
        ledger: IFileLedger,
        object_store: IObjectStore,
        *,
        download_url_expiry: timedelta = timedelta(hours=1),
    ) -> None:
        self.session_gate = session_gate
        self.ledger = ledger
        self.store = object_store
        self.download_url_expiry = download_url_expiry

    async def list_files(self, session: Session) -> list[FileRecord]:
        """Return the caller's files, newest first."""
        live = await self.session_gate.verify(session)
        return await self.ledger.list_for(live.principal_id)

    async def usage(self, session: Session) -> StorageUsage:
        """Return file count and total bytes for the caller."""
        live = await self.session_gate.verify(session)
        records = await self.ledger.list_for(live.principal_id)
        return StorageUsage(
            owner_id=live.principal_id,
            total_files=len(records),
            total_bytes=sum(r.size_bytes for r in records),
        )

    async def download_url(self, session: Session, record: FileRecord) -> str:
        """Return the stored permanent URL, or a temporary one from the object store.

        Both come from the ledger's copy of the record; RecordNotFoundException
        when the caller has no such record.
        """
        live = await self.session_gate.verify(session)
        if record.owner_id != live.principal_id:
            raise AuthorizationException(resource="file", action="download")
        stored = await self.ledger.get_by_id(record.id, live.principal_id)
        if stored is None:
            raise RecordNotFoundException(record.id)
        if stored.download_url:
            return stored.download_url
        return await self.store.generate_download_url(
            stored.locator, expiration=self.download_url_expiry
        )
