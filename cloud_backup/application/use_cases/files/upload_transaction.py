"""Upload transaction: write the object, then record it in the file ledger.

There is no atomicity across the two stores, so the ordering and the
partial-failure outcomes are the contract:

- object write fails, times out or is cancelled -> ObjectWriteFailedException,
  no ledger record (stores consistent);
- object written, ledger insert fails -> MetadataWriteFailedException with the
  locator; the object is left in place (orphan object) because the insert may
  have persisted despite the error. ReconcileOrphansUseCase repairs it.
"""

from __future__ import annotations

import asyncio
import io
import logging
from collections.abc import Callable
from contextlib import aclosing
from typing import TYPE_CHECKING, BinaryIO

from cloud_backup.application.dtos.file_record import FileRecord, FileRecordCreate
from cloud_backup.application.dtos.upload import UploadSession, WriteSnapshot
from cloud_backup.application.services.progress_stream import ProgressStream
from cloud_backup.core.constants import DEFAULT_CONTENT_TYPE
from cloud_backup.domain.enums import UploadState
from cloud_backup.domain.exceptions import (
    MetadataWriteFailedException,
    ObjectWriteFailedException,
    ValidationException,
)
from cloud_backup.shared.utils.datetime import utc_now
from cloud_backup.shared.utils.formatting import sanitize_filename

if TYPE_CHECKING:
    from datetime import datetime

    from cloud_backup.application.dtos.session import Session
    from cloud_backup.application.interfaces.repositories import IFileLedger
    from cloud_backup.application.interfaces.storage import IObjectStore
    from cloud_backup.application.services.session_gate import SessionGate

logger = logging.getLogger(__name__)


class UploadHandle:
    """Caller's view of one in-flight upload.

    Iterate ``progress`` to observe it (stopping early does not cancel the
    write); await ``result()`` for the FileRecord or the failure.
    """

    def __init__(self, upload_session: UploadSession, progress: ProgressStream) -> None:
        self._upload_session = upload_session
        self._progress = progress
        self._task: asyncio.Task[FileRecord] | None = None
        self._cancel_requested = False

    @property
    def progress(self) -> ProgressStream:
        return self._progress

    @property
    def upload_session(self) -> UploadSession:
        return self._upload_session

    @property
    def state(self) -> UploadState:
        return self._upload_session.state

    def cancel(self) -> bool:
        """Abort the object write. Returns False once the write has completed.

        A cancelled upload never produces a ledger record.
        """
        if self._task is None or self._task.done():
            return False
        if self.state not in (UploadState.PENDING, UploadState.WRITING):
            return False
        self._cancel_requested = True
        self._task.cancel()
        return True

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def _attach(self, task: asyncio.Task[FileRecord]) -> None:
        self._task = task
        task.add_done_callback(self._retrieve_outcome)

    def _advance(self, **changes) -> UploadSession:
        self._upload_session = self._upload_session.advance(**changes)
        return self._upload_session

    def _retrieve_outcome(self, task: asyncio.Task[FileRecord]) -> None:
        # Marks the exception retrieved for callers that never await result().
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Upload %s ended with %r", self._upload_session.storage_path, exc)

    async def result(self) -> FileRecord:
        """Wait for the upload; returns the acknowledged FileRecord or raises."""
        if self._task is None:
            raise RuntimeError("Upload has not been started")
        try:
            return await self._task
        except asyncio.CancelledError:
            # Cancelled before the write started: the task never ran its own handler.
            if not (self._cancel_requested and self._task.cancelled()):
                raise
            self._advance(state=UploadState.CANCELLED, error="cancelled")
            self._progress.close()
            raise ObjectWriteFailedException(
                self._upload_session.storage_path, "cancelled"
            ) from None


class UploadTransactionManager:
    """Coordinates the object store and the file ledger into one 'add a file' operation."""

    def __init__(
        self,
        session_gate: SessionGate,
        object_store: IObjectStore,
        ledger: IFileLedger,
        *,
        max_upload_size: int,
        progress_buffer_size: int = 64,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.session_gate = session_gate
        self.store = object_store
        self.ledger = ledger
        self.max_upload_size = max_upload_size
        self.progress_buffer_size = progress_buffer_size
        self._clock = clock

    async def upload(
        self,
        session: Session,
        file_data: bytes | BinaryIO,
        file_name: str,
        size_bytes: int,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        on_progress: Callable[[float], None] | None = None,
    ) -> FileRecord:
        """Upload file_data and return its ledger record once acknowledged."""
        handle = await self.start_upload(
            session,
            file_data,
            file_name,
            size_bytes,
            content_type=content_type,
            on_progress=on_progress,
        )
        return await handle.result()

    async def start_upload(
        self,
        session: Session,
        file_data: bytes | BinaryIO,
        file_name: str,
        size_bytes: int,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        on_progress: Callable[[float], None] | None = None,
    ) -> UploadHandle:
        """Check preconditions and start the upload in the background.

        Precondition failures (UnauthenticatedException, ValidationException)
        are raised here, before anything is written.
        """
        safe_name = self._validate(file_name, size_bytes)
        live = await self.session_gate.verify(session)

        storage_path = self.store.storage_path_for(live.principal_id, safe_name)
        progress = ProgressStream(self.progress_buffer_size)
        if on_progress is not None:
            progress.add_listener(on_progress)
        handle = UploadHandle(
            UploadSession(
                storage_path=storage_path,
                file_name=safe_name,
                total_bytes=size_bytes,
            ),
            progress,
        )
        stream = io.BytesIO(file_data) if isinstance(file_data, bytes | bytearray) else file_data
        handle._attach(
            asyncio.create_task(
                self._run(handle, live, stream, content_type),
                name=f"upload:{storage_path}",
            )
        )
        return handle

    def _validate(self, file_name: str, size_bytes: int) -> str:
        if isinstance(size_bytes, bool) or not isinstance(size_bytes, int):
            raise ValidationException("sizeBytes must be an integer", field="size_bytes")
        if size_bytes <= 0:
            raise ValidationException("Cannot upload an empty file", field="size_bytes")
        if size_bytes > self.max_upload_size:
            raise ValidationException(
                f"File exceeds the maximum upload size of {self.max_upload_size} bytes",
                field="size_bytes",
            )
        try:
            return sanitize_filename(file_name)
        except ValueError as e:
            raise ValidationException(str(e), field="file_name") from e

    async def _run(
        self,
        handle: UploadHandle,
        session: Session,
        file_data: BinaryIO,
        content_type: str,
    ) -> FileRecord:
        try:
            final = await self._write_object(handle, file_data, content_type)
            return await self._record(handle, session, final, content_type)
        finally:
            handle.progress.close()

    async def _write_object(
        self,
        handle: UploadHandle,
        file_data: BinaryIO,
        content_type: str,
    ) -> WriteSnapshot:
        """Drive the resumable write, publishing progress. Returns the final snapshot."""
        upload = handle._advance(state=UploadState.WRITING)
        final: WriteSnapshot | None = None
        try:
            async with aclosing(
                self.store.write_resumable(
                    upload.storage_path,
                    file_data,
                    upload.total_bytes,
                    content_type,
                )
            ) as writes:
                async for snapshot in writes:
                    handle._advance(bytes_transferred=snapshot.bytes_transferred)
                    handle.progress.publish(snapshot.fraction)
                    if snapshot.is_complete:
                        final = snapshot
                        break
            if final is None:
                raise RuntimeError("object store ended the write without a locator")
        except asyncio.CancelledError:
            if not handle.cancel_requested:
                raise
            handle._advance(state=UploadState.CANCELLED, error="cancelled")
            logger.info("Upload cancelled: %s", upload.storage_path)
            raise ObjectWriteFailedException(upload.storage_path, "cancelled") from None
        except Exception as e:
            handle._advance(state=UploadState.FAILED, error=str(e))
            logger.warning("Object write failed for %s: %s", upload.storage_path, e)
            raise ObjectWriteFailedException(upload.storage_path, str(e)) from e

        handle._advance(
            state=UploadState.RECORDING,
            bytes_transferred=final.bytes_transferred,
            locator=final.locator,
        )
        return final

    async def _record(
        self,
        handle: UploadHandle,
        session: Session,
        final: WriteSnapshot,
        content_type: str,
    ) -> FileRecord:
        """Insert the ledger record for a written object."""
        upload = handle.upload_session
        locator = final.locator or upload.storage_path
        create = FileRecordCreate(
            name=upload.file_name,
            size_bytes=upload.total_bytes,
            locator=locator,
            owner_id=session.principal_id,
            created_at=self._clock(),
            content_type=content_type,
            download_url=final.download_url,
        )
        try:
            record = await self.ledger.insert(create)
        except Exception as e:
            handle._advance(state=UploadState.FAILED, error=str(e))
            logger.error(
                "File record not written; object %s is orphaned until reconciled: %s",
                locator,
                e,
            )
            raise MetadataWriteFailedException(locator, str(e)) from e

        handle._advance(state=UploadState.COMPLETED)
        logger.info(
            "Uploaded %s (%d bytes) as record %s",
            record.name,
            record.size_bytes,
            record.id,
        )
        return record
