"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs only; no infrastructure imports.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from cloud_backup.application.dtos.file_record import FileRecord, FileRecordCreate


class IFileLedger(Protocol):
    """Protocol for the file ledger (authoritative list of each user's files).

    The owner filter is part of every read query; implementations never
    fetch other owners' records and filter afterwards.
    """

    async def list_for(self, owner_id: str) -> list[FileRecord]:
        """Return the owner's records, newest created_at first, from one query snapshot."""

    async def get_by_id(self, record_id: str, owner_id: str) -> FileRecord | None:
        """Return the record if it exists and belongs to owner_id."""

    async def insert(self, record: FileRecordCreate) -> FileRecord:
        """Persist a new record and return it with its assigned id."""

    async def delete_by_id(self, record_id: str, owner_id: str) -> None:
        """Delete the record. Raises RecordNotFoundException outside the owner's scope."""
