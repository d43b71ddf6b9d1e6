"""SQLAlchemy file ledger (implements IFileLedger). Returns application DTOs."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cloud_backup.application.dtos.file_record import FileRecord, FileRecordCreate
from cloud_backup.domain.exceptions import (
    RecordNotFoundException,
    StoreUnavailableException,
)
from cloud_backup.infrastructure.persistence.models.file_record import FileRecordModel
from cloud_backup.shared.utils.datetime import ensure_utc
from cloud_backup.shared.utils.generators import generate_cuid

logger = logging.getLogger(__name__)


def _create_to_model(record_id: str, r: FileRecordCreate) -> FileRecordModel:
    """Map FileRecordCreate (write-model) to ORM FileRecordModel for persistence."""
    return FileRecordModel(
        id=record_id,
        owner_id=r.owner_id,
        name=r.name,
        size_bytes=r.size_bytes,
        locator=r.locator,
        content_type=r.content_type,
        download_url=r.download_url,
        created_at=ensure_utc(r.created_at),
    )


def _model_to_result(m: FileRecordModel) -> FileRecord:
    """Map ORM FileRecordModel to application FileRecord."""
    return FileRecord(
        id=m.id,
        name=m.name,
        size_bytes=m.size_bytes,
        locator=m.locator,
        owner_id=m.owner_id,
        created_at=ensure_utc(m.created_at),
        content_type=m.content_type,
        download_url=m.download_url,
    )


class SqlFileLedger:
    """File ledger on a SQL database. Each call runs in its own short transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_for(self, owner_id: str) -> list[FileRecord]:
        """Return owner's records newest first."""
        stmt = (
            select(FileRecordModel)
            .where(FileRecordModel.owner_id == owner_id)
            .order_by(FileRecordModel.created_at.desc(), FileRecordModel.id.desc())
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [_model_to_result(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreUnavailableException(str(e)) from e

    async def get_by_id(self, record_id: str, owner_id: str) -> FileRecord | None:
        """Return record by ID if it belongs to owner_id."""
        stmt = select(FileRecordModel).where(
            FileRecordModel.id == record_id,
            FileRecordModel.owner_id == owner_id,
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                model = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreUnavailableException(str(e)) from e
        return _model_to_result(model) if model is not None else None

    async def insert(self, record: FileRecordCreate) -> FileRecord:
        """Insert a new record under a fresh CUID."""
        model = _create_to_model(generate_cuid(), record)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(model)
        except SQLAlchemyError as e:
            raise StoreUnavailableException(str(e)) from e
        return _model_to_result(model)

    async def delete_by_id(self, record_id: str, owner_id: str) -> None:
        """Delete the owner's record; RecordNotFoundException if no row matched."""
        stmt = delete(FileRecordModel).where(
            FileRecordModel.id == record_id,
            FileRecordModel.owner_id == owner_id,
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    deleted = result.rowcount
        except SQLAlchemyError as e:
            raise StoreUnavailableException(str(e)) from e
        if not deleted:
            raise RecordNotFoundException(record_id)
