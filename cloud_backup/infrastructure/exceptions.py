"""Object store backend errors.

They extend BackupException so callers that bypass the transaction
managers still get message, error_code and details. details["key"] is
the storage path or locator involved.
"""

from cloud_backup.domain.exceptions import BackupException


class StorageException(BackupException):
    """Base class for object store backend failures."""

    error_code = "STORAGE_ERROR"
    verb = "access"

    def __init__(self, key: str, reason: str | None = None, **extra) -> None:
        details = {"key": key, **extra}
        if reason is not None:
            details["reason"] = reason
        message = f"Could not {self.verb} object {key}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, self.error_code, details)


class StorageNotFoundError(StorageException):
    error_code = "STORAGE_NOT_FOUND"
    verb = "find"


class StorageUploadError(StorageException):
    error_code = "STORAGE_UPLOAD_ERROR"
    verb = "write"


class StorageDeleteError(StorageException):
    error_code = "STORAGE_DELETE_ERROR"
    verb = "delete"


class StorageReadError(StorageException):
    """Metadata read, namespace listing or download URL generation failed."""

    error_code = "STORAGE_READ_ERROR"
    verb = "read"


class StorageSizeMismatchError(StorageException):
    """The source stream did not hold exactly the declared number of bytes."""

    error_code = "STORAGE_SIZE_MISMATCH"
    verb = "write"

    def __init__(self, key: str, expected: int, actual: int) -> None:
        super().__init__(
            key, f"expected {expected} bytes, got {actual}", expected=expected, actual=actual
        )


class StorageAlreadyExistsError(StorageException):
    error_code = "STORAGE_EXISTS_ERROR"
    verb = "overwrite"


class StoragePermissionError(StorageException):
    """Key outside the owner's namespace or storage root, or access denied."""

    error_code = "STORAGE_PERMISSION_ERROR"
    verb = "use"

    def __init__(self, key: str, operation: str) -> None:
        super().__init__(key, f"{operation} check failed", operation=operation)
