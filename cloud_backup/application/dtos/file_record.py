"""DTOs for file ledger records (no dependency on ORM or Firestore)."""

from dataclasses import dataclass
from datetime import datetime

from cloud_backup.shared.utils.formatting import format_file_size


@dataclass(frozen=True)
class FileRecordCreate:
    """Input for inserting a file record (write-model). The upload manager builds this; the ledger assigns the id."""

    name: str
    size_bytes: int
    locator: str
    owner_id: str
    created_at: datetime
    content_type: str
    download_url: str | None = None


@dataclass(frozen=True)
class FileRecord:
    """File record read-model (result of insert, get_by_id and list_for).

    locator references the stored object; owner_id never changes after insert.
    """

    id: str
    name: str
    size_bytes: int
    locator: str
    owner_id: str
    created_at: datetime
    content_type: str
    download_url: str | None = None


@dataclass(frozen=True)
class StorageUsage:
    """Per-owner totals shown next to the file list."""

    owner_id: str
    total_files: int
    total_bytes: int

    @property
    def total_size_display(self) -> str:
        return format_file_size(self.total_bytes)
