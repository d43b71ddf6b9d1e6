"""Domain enumerations for the cloud backup core."""

from enum import Enum


class UploadState(str, Enum):
    """Lifecycle of one in-flight upload.

    Only WRITING can be cancelled; once the object is written the record
    insert runs to completion.
    """

    PENDING = "pending"
    WRITING = "writing"
    RECORDING = "recording"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.COMPLETED, UploadState.FAILED, UploadState.CANCELLED)
