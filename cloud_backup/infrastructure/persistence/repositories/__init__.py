"""SQL repositories. Return application DTOs, never ORM objects."""

from cloud_backup.infrastructure.persistence.repositories.file_ledger_sql import SqlFileLedger

__all__ = ["SqlFileLedger"]
