"""Unit tests for domain exceptions: codes and retry context in details."""

from cloud_backup.domain.exceptions import (
    AuthorizationException,
    BackupException,
    MetadataDeleteFailedException,
    MetadataWriteFailedException,
    ObjectDeleteFailedException,
    ObjectWriteFailedException,
    RecordNotFoundException,
    UnauthenticatedException,
    ValidationException,
)
from cloud_backup.infrastructure.exceptions import StorageException, StorageUploadError


def test_base_defaults_error_code_to_class_name() -> None:
    """Without an explicit code the class name is used."""
    exc = BackupException("boom")
    assert exc.message == "boom"
    assert exc.error_code == "BackupException"
    assert exc.details == {}


def test_validation_carries_field() -> None:
    exc = ValidationException("Cannot upload an empty file", field="size_bytes")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "size_bytes"}


def test_authorization_message_from_resource_and_action() -> None:
    exc = AuthorizationException(resource="file", action="delete")
    assert exc.message == "Permission denied: delete on file"
    assert exc.details == {"resource": "file", "action": "delete"}


def test_unauthenticated_code() -> None:
    assert UnauthenticatedException().error_code == "UNAUTHENTICATED"


def test_partial_failures_carry_retry_context() -> None:
    """Each partial-failure outcome names the locator and/or record id to repair."""
    assert ObjectWriteFailedException("users/a/1_x_f", "timeout").details["storage_path"] == "users/a/1_x_f"
    delete_obj = ObjectDeleteFailedException("users/a/1_x_f", "r1", "503")
    assert delete_obj.details["locator"] == "users/a/1_x_f"
    assert delete_obj.details["record_id"] == "r1"
    assert MetadataWriteFailedException("users/a/1_x_f", "down").details["locator"] == "users/a/1_x_f"
    delete_meta = MetadataDeleteFailedException("r1", "users/a/1_x_f", "down")
    assert delete_meta.details == {
        "record_id": "r1",
        "locator": "users/a/1_x_f",
        "reason": "down",
    }
    assert RecordNotFoundException("r9").error_code == "RECORD_NOT_FOUND"


def test_storage_errors_are_backup_exceptions() -> None:
    exc = StorageUploadError("users/a/x", "reset")
    assert isinstance(exc, StorageException)
    assert isinstance(exc, BackupException)
    assert exc.error_code == "STORAGE_UPLOAD_ERROR"
