"""Application DTOs (no ORM dependency)."""

from cloud_backup.application.dtos.file_record import (
    FileRecord,
    FileRecordCreate,
    StorageUsage,
)
from cloud_backup.application.dtos.reconcile import ReconcileResult
from cloud_backup.application.dtos.session import Session
from cloud_backup.application.dtos.upload import (
    StoredObject,
    UploadSession,
    WriteSnapshot,
)

__all__ = [
    "FileRecord",
    "FileRecordCreate",
    "ReconcileResult",
    "Session",
    "StorageUsage",
    "StoredObject",
    "UploadSession",
    "WriteSnapshot",
]
