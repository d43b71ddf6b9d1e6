"""Domain layer: enums and exceptions.

No dependencies on infrastructure. Used by application and
infrastructure layers.
"""

from cloud_backup.domain.enums import UploadState
from cloud_backup.domain.exceptions import (
    AccountExistsException,
    AuthorizationException,
    BackupException,
    InvalidCredentialsException,
    MetadataDeleteFailedException,
    MetadataWriteFailedException,
    ObjectDeleteFailedException,
    ObjectWriteFailedException,
    ProviderUnavailableException,
    RecordNotFoundException,
    StoreUnavailableException,
    UnauthenticatedException,
    ValidationException,
    WeakCredentialException,
)

__all__ = [
    "UploadState",
    "AccountExistsException",
    "AuthorizationException",
    "BackupException",
    "InvalidCredentialsException",
    "MetadataDeleteFailedException",
    "MetadataWriteFailedException",
    "ObjectDeleteFailedException",
    "ObjectWriteFailedException",
    "ProviderUnavailableException",
    "RecordNotFoundException",
    "StoreUnavailableException",
    "UnauthenticatedException",
    "ValidationException",
    "WeakCredentialException",
]
