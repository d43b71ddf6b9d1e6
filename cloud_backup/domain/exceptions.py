"""Domain exceptions for the cloud backup core.

Defines the failure taxonomy surfaced to callers. Every exception carries
enough context in ``details`` (locator, record id) for the caller to retry
or for a reconciliation sweep to repair a partial failure. Nothing here is
retried automatically.
"""

from typing import Any


class BackupException(Exception):
    """Base exception for all cloud backup errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. locator, record_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(BackupException):
    """Raised when input validation fails (e.g. empty name or invalid size)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthorizationException(BackupException):
    """Raised when a principal acts on a file record it does not own."""

    def __init__(
        self,
        resource: str | None = None,
        action: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        """Initialize with optional resource, action, and message.

        Args:
            resource: Optional resource type (e.g. 'file').
            action: Optional action that was attempted (e.g. 'delete').
            message: Human-readable message; default used when resource/action omitted.
        """
        if resource and action:
            message = f"Permission denied: {action} on {resource}"
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if action:
            details["action"] = action
        super().__init__(message, "PERMISSION_DENIED", details)


# --- Session / identity provider ---


class UnauthenticatedException(BackupException):
    """Raised when an operation needs a session and none is active (or it expired)."""

    def __init__(self, message: str = "No authenticated session") -> None:
        super().__init__(message, "UNAUTHENTICATED")


class InvalidCredentialsException(BackupException):
    """Raised when the identity provider rejects an email/password pair."""

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message, "INVALID_CREDENTIALS")


class AccountExistsException(BackupException):
    """Raised on signup when an account with the email already exists."""

    def __init__(self, email: str) -> None:
        super().__init__(
            f"An account already exists for {email}",
            "ACCOUNT_EXISTS",
            {"email": email},
        )


class WeakCredentialException(BackupException):
    """Raised on signup when the provider rejects the password as too weak."""

    def __init__(self, reason: str = "Password is too weak") -> None:
        super().__init__(reason, "WEAK_CREDENTIAL", {"reason": reason})


class ProviderUnavailableException(BackupException):
    """Raised when the identity provider cannot be reached or is failing."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            "Identity provider unavailable",
            "PROVIDER_UNAVAILABLE",
            {"reason": reason},
        )


# --- Object store ---


class ObjectWriteFailedException(BackupException):
    """Raised when the object write fails, times out or is cancelled.

    No ledger entry exists for the upload; the store and ledger are consistent.
    """

    def __init__(self, storage_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to write object: {storage_path}",
            "OBJECT_WRITE_FAILED",
            {"storage_path": storage_path, "reason": reason},
        )


class ObjectDeleteFailedException(BackupException):
    """Raised when deleting the object fails. The ledger entry is left intact (retryable)."""

    def __init__(self, locator: str, record_id: str, reason: str) -> None:
        super().__init__(
            f"Failed to delete object: {locator}",
            "OBJECT_DELETE_FAILED",
            {"locator": locator, "record_id": record_id, "reason": reason},
        )


# --- Metadata store (file ledger) ---


class StoreUnavailableException(BackupException):
    """Raised when the metadata store cannot be reached or rejects the request."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            "Metadata store unavailable",
            "STORE_UNAVAILABLE",
            {"reason": reason},
        )


class RecordNotFoundException(BackupException):
    """Raised when a file record does not exist in the caller's scope."""

    def __init__(self, record_id: str) -> None:
        super().__init__(
            f"File record not found: {record_id}",
            "RECORD_NOT_FOUND",
            {"record_id": record_id},
        )


class MetadataWriteFailedException(BackupException):
    """Raised when the object was written but its ledger record was not.

    The object at ``locator`` is orphaned until a retry or a reconciliation
    sweep links or removes it.
    """

    def __init__(self, locator: str, reason: str) -> None:
        super().__init__(
            f"Object stored but file record not written: {locator}",
            "METADATA_WRITE_FAILED",
            {"locator": locator, "reason": reason},
        )


class MetadataDeleteFailedException(BackupException):
    """Raised when the object was deleted but its ledger record was not.

    The record ``record_id`` now points at a missing object and should be
    removed by a retry or a reconciliation sweep.
    """

    def __init__(self, record_id: str, locator: str, reason: str) -> None:
        super().__init__(
            f"Object deleted but file record remains: {record_id}",
            "METADATA_DELETE_FAILED",
            {"record_id": record_id, "locator": locator, "reason": reason},
        )
