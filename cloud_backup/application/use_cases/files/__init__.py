"""File use cases: upload, delete, queries and reconciliation."""

from cloud_backup.application.use_cases.files.delete_transaction import (
    DeleteTransactionManager,
)
from cloud_backup.application.use_cases.files.file_queries import FileQueryService
from cloud_backup.application.use_cases.files.reconcile_orphans import (
    ReconcileOrphansUseCase,
)
from cloud_backup.application.use_cases.files.upload_transaction import (
    UploadHandle,
    UploadTransactionManager,
)

__all__ = [
    "DeleteTransactionManager",
    "FileQueryService",
    "ReconcileOrphansUseCase",
    "UploadHandle",
    "UploadTransactionManager",
]
