"""Persistence models: ORM entities."""

from cloud_backup.infrastructure.persistence.models.file_record import FileRecordModel

__all__ = ["FileRecordModel"]
