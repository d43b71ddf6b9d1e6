"""DTOs for object writes and in-flight uploads."""

from dataclasses import dataclass, field, replace
from datetime import datetime

from cloud_backup.domain.enums import UploadState


@dataclass(frozen=True)
class WriteSnapshot:
    """Progress of one resumable object write.

    The last snapshot of a successful write carries the locator (and a
    download URL when the backend issues a permanent one).
    """

    bytes_transferred: int
    total_bytes: int
    locator: str | None = None
    download_url: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.locator is not None

    @property
    def fraction(self) -> float:
        """bytes_transferred / total_bytes clamped to [0, 1]."""
        if self.total_bytes <= 0:
            return 1.0 if self.is_complete else 0.0
        return min(1.0, max(0.0, self.bytes_transferred / self.total_bytes))


@dataclass(frozen=True)
class UploadSession:
    """Transient state of one upload call. Never persisted."""

    storage_path: str
    file_name: str
    total_bytes: int
    bytes_transferred: int = 0
    state: UploadState = UploadState.PENDING
    locator: str | None = None
    error: str | None = field(default=None, compare=False)

    def advance(self, **changes) -> "UploadSession":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


@dataclass(frozen=True)
class StoredObject:
    """An object found in the store (used by stat and namespace listing)."""

    locator: str
    size_bytes: int
    updated_at: datetime | None = None
