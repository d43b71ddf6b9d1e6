"""Shared pieces of the object store backends: key derivation and chunked reads."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import BinaryIO

from cloud_backup.core.constants import owner_namespace
from cloud_backup.domain.exceptions import ValidationException
from cloud_backup.infrastructure.exceptions import StorageSizeMismatchError
from cloud_backup.shared.utils.datetime import epoch_millis, utc_now
from cloud_backup.shared.utils.generators import generate_cuid


def _read_exact(file_data: BinaryIO, size: int) -> bytes:
    """Blocking: read up to size bytes, looping over short reads until EOF."""
    parts: list[bytes] = []
    remaining = size
    while remaining > 0:
        part = file_data.read(remaining)
        if not part:
            break
        parts.append(part)
        remaining -= len(part)
    return b"".join(parts)


async def read_chunks(
    file_data: BinaryIO,
    total_bytes: int,
    chunk_size: int,
    storage_path: str,
) -> AsyncIterator[bytes]:
    """Yield exactly total_bytes from file_data in chunk_size pieces (last may be shorter).

    Reads run in a thread so large local files do not block the event loop.
    Raises StorageSizeMismatchError before yielding the last chunk when the
    stream is longer than declared, or as soon as it ends early.
    """
    remaining = total_bytes
    while remaining > 0:
        chunk = await asyncio.to_thread(_read_exact, file_data, min(chunk_size, remaining))
        if not chunk:
            raise StorageSizeMismatchError(storage_path, total_bytes, total_bytes - remaining)
        remaining -= len(chunk)
        if remaining == 0:
            extra = await asyncio.to_thread(file_data.read, 1)
            if extra:
                raise StorageSizeMismatchError(storage_path, total_bytes, total_bytes + len(extra))
        yield chunk


class ObjectStoreBase:
    """Key layout shared by all backends: users/{encoded owner_id}/{epoch_ms}_{cuid}_{file_name}."""

    def storage_path_for(self, owner_id: str, file_name: str) -> str:
        if not owner_id:
            raise ValidationException("Owner id is required", field="owner_id")
        stamp = epoch_millis(utc_now())
        return f"{owner_namespace(owner_id)}{stamp}_{generate_cuid()}_{file_name}"
