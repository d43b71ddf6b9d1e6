"""Local filesystem object store with path validation and atomic writes."""

from __future__ import annotations

import asyncio
import os
import tempfile
from collections.abc import AsyncIterator
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO

import aiofiles
import aiofiles.os

from cloud_backup.application.dtos.upload import StoredObject, WriteSnapshot
from cloud_backup.infrastructure.exceptions import (
    StorageAlreadyExistsError,
    StorageDeleteError,
    StorageException,
    StorageNotFoundError,
    StoragePermissionError,
    StorageReadError,
    StorageUploadError,
)
from cloud_backup.infrastructure.external.storage.base import ObjectStoreBase, read_chunks
from cloud_backup.shared.utils.datetime import from_timestamp_utc

_TEMP_PREFIX = ".tmp_"


class LocalObjectStore(ObjectStoreBase):
    """Local filesystem storage with chunked writes and path traversal protection.

    Paths are validated against storage_root. Each write goes to a temp file
    in the target directory and is renamed into place only once every byte
    is on disk, so an aborted write never leaves a visible object. The
    locator is the storage path relative to storage_root.
    """

    def __init__(self, storage_root: str, chunk_size: int = 256 * 1024) -> None:
        """Initialize local storage.

        Args:
            storage_root: Base directory for all objects.
            chunk_size: Bytes written (and reported as progress) per step.
        """
        self.storage_root = Path(storage_root).resolve()
        self.chunk_size = chunk_size
        self.storage_root.mkdir(parents=True, exist_ok=True, mode=0o750)

    def _get_full_path(self, storage_ref: str) -> Path:
        """Resolve and validate path under storage_root. Raises StoragePermissionError if traversal."""
        full_path = (self.storage_root / storage_ref).resolve()
        try:
            full_path.relative_to(self.storage_root)
        except ValueError as e:
            raise StoragePermissionError(storage_ref, "path_validation") from e
        return full_path

    @staticmethod
    def _discard(temp_path: str) -> None:
        if os.path.exists(temp_path):
            os.unlink(temp_path)

    async def write_resumable(
        self,
        storage_path: str,
        file_data: BinaryIO,
        total_bytes: int,
        content_type: str,
    ) -> AsyncIterator[WriteSnapshot]:
        """Write chunks to a temp file, yield progress, then rename into place."""
        target_path = self._get_full_path(storage_path)
        if target_path.exists():
            raise StorageAlreadyExistsError(storage_path)
        target_path.parent.mkdir(parents=True, exist_ok=True, mode=0o750)
        temp_fd, temp_path = tempfile.mkstemp(
            dir=target_path.parent,
            prefix=_TEMP_PREFIX,
            suffix=".part",
        )
        os.close(temp_fd)
        transferred = 0
        try:
            async with aiofiles.open(temp_path, "wb") as f:
                async for chunk in read_chunks(
                    file_data, total_bytes, self.chunk_size, storage_path
                ):
                    await f.write(chunk)
                    transferred += len(chunk)
                    yield WriteSnapshot(transferred, total_bytes)
            os.chmod(temp_path, 0o640)
            os.replace(temp_path, target_path)
        except StorageException:
            self._discard(temp_path)
            raise
        except (asyncio.CancelledError, GeneratorExit):
            self._discard(temp_path)
            raise
        except Exception as e:
            self._discard(temp_path)
            raise StorageUploadError(storage_path, str(e)) from e
        yield WriteSnapshot(transferred, total_bytes, locator=storage_path)

    async def delete(self, locator: str) -> bool:
        """Delete object and prune empty parent directories. Returns True if deleted."""
        try:
            file_path = self._get_full_path(locator)
            if not file_path.exists():
                return False
            await aiofiles.os.remove(file_path)
            parent = file_path.parent
            while parent != self.storage_root:
                try:
                    if not any(parent.iterdir()):
                        parent.rmdir()
                        parent = parent.parent
                    else:
                        break
                except OSError:
                    break
            return True
        except StoragePermissionError:
            raise
        except Exception as e:
            raise StorageDeleteError(locator, str(e)) from e

    async def stat(self, locator: str) -> StoredObject | None:
        """Return size and mtime, or None if the object does not exist."""
        file_path = self._get_full_path(locator)
        try:
            st = await aiofiles.os.stat(file_path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageReadError(locator, str(e)) from e
        return StoredObject(
            locator=locator,
            size_bytes=st.st_size,
            updated_at=from_timestamp_utc(st.st_mtime),
        )

    def _list_sync(self, prefix: str) -> list[StoredObject]:
        base_dir = self._get_full_path(prefix.rsplit("/", 1)[0]) if "/" in prefix else self.storage_root
        if not base_dir.is_dir():
            return []
        found: list[StoredObject] = []
        for path in base_dir.rglob("*"):
            if not path.is_file() or path.name.startswith(_TEMP_PREFIX):
                continue
            rel = path.relative_to(self.storage_root).as_posix()
            if not rel.startswith(prefix):
                continue
            st = path.stat()
            found.append(
                StoredObject(
                    locator=rel,
                    size_bytes=st.st_size,
                    updated_at=from_timestamp_utc(st.st_mtime),
                )
            )
        return sorted(found, key=lambda o: o.locator)

    async def list_namespace(self, prefix: str) -> list[StoredObject]:
        """List finished objects under prefix (in-flight temp files are skipped)."""
        try:
            return await asyncio.to_thread(self._list_sync, prefix)
        except StoragePermissionError:
            raise
        except OSError as e:
            raise StorageReadError(prefix, str(e)) from e

    async def generate_download_url(
        self,
        locator: str,
        expiration: timedelta = timedelta(hours=1),
    ) -> str:
        """Return a file:// URI (local files do not expire)."""
        file_path = self._get_full_path(locator)
        if not file_path.exists():
            raise StorageNotFoundError(locator)
        return file_path.as_uri()
