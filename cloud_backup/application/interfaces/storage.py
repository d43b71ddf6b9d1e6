"""Object store interface (port) used by the transaction managers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import timedelta
from typing import TYPE_CHECKING, BinaryIO, Protocol

if TYPE_CHECKING:
    from cloud_backup.application.dtos.upload import StoredObject, WriteSnapshot


class IObjectStore(Protocol):
    """Protocol for binary object storage backends (local, Firebase/GCS, S3).

    Implementations raise StorageException subclasses; the transaction
    managers wrap them into ObjectWriteFailedException / ObjectDeleteFailedException.
    """

    def storage_path_for(self, owner_id: str, file_name: str) -> str:
        """Return a new owner-namespaced, collision-resistant object key."""

    def write_resumable(
        self,
        storage_path: str,
        file_data: BinaryIO,
        total_bytes: int,
        content_type: str,
    ) -> AsyncIterator[WriteSnapshot]:
        """Write file_data in chunks, yielding progress; the last snapshot carries the locator.

        Cancelling the consuming task aborts the resumable session so no
        partial object remains.
        """

    async def delete(self, locator: str) -> bool:
        """Delete the object. Returns True if deleted, False if it was already gone."""

    async def stat(self, locator: str) -> StoredObject | None:
        """Return size/updated time of the object, or None if missing."""

    async def list_namespace(self, prefix: str) -> list[StoredObject]:
        """List every object whose key starts with prefix."""

    async def generate_download_url(
        self,
        locator: str,
        expiration: timedelta = timedelta(hours=1),
    ) -> str:
        """Return a download URL for the object."""
