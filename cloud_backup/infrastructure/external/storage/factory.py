"""Object store factory: creates the local, Firebase Storage or S3 backend from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from cloud_backup.application.interfaces.storage import IObjectStore

if TYPE_CHECKING:
    from cloud_backup.core.config import Settings


class StorageFactory:
    """Factory for object store instances based on configuration."""

    @staticmethod
    def create_object_store(
        settings: "Settings | None" = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> IObjectStore:
        """Create the object store from settings.

        Args:
            settings: Application settings; if None, uses get_settings().
            http_client: Shared httpx client for the Firebase backend.

        Returns:
            LocalObjectStore, FirebaseStorageObjectStore or S3ObjectStore.

        Raises:
            ValueError: Unknown backend or missing required config.
        """
        from cloud_backup.core.config import get_settings

        s = settings or get_settings()
        backend = s.storage_backend.lower()

        if backend == "local":
            from cloud_backup.infrastructure.external.storage.local_storage import (
                LocalObjectStore,
            )

            if not s.storage_root:
                raise ValueError("STORAGE_ROOT required for local backend")
            return LocalObjectStore(
                storage_root=s.storage_root,
                chunk_size=s.upload_chunk_size,
            )
        if backend == "firebase":
            from cloud_backup.infrastructure.external.storage.firebase_storage import (
                STORAGE_SCOPE,
                FirebaseStorageObjectStore,
            )
            from cloud_backup.infrastructure.firebase.client import (
                load_service_account_info,
                service_account_credentials,
            )

            key_dict = load_service_account_info(s)
            if not key_dict or not s.storage_bucket:
                raise ValueError(
                    "Firebase storage backend needs STORAGE_BUCKET and service account credentials"
                )
            return FirebaseStorageObjectStore(
                bucket=s.storage_bucket,
                credentials=service_account_credentials(key_dict, [STORAGE_SCOPE]),
                chunk_size=s.upload_chunk_size,
                http_client=http_client,
                timeout=s.http_timeout_seconds,
            )
        if backend == "s3":
            if not s.storage_bucket:
                raise ValueError("STORAGE_BUCKET required for s3 backend")
            from cloud_backup.infrastructure.external.storage.s3_storage import (
                S3ObjectStore,
            )

            return S3ObjectStore(
                bucket=s.storage_bucket,
                region=s.s3_region,
                endpoint_url=s.s3_endpoint_url,
                access_key=s.s3_access_key,
                secret_key=s.s3_secret_key.get_secret_value() if s.s3_secret_key else None,
                part_size=s.upload_chunk_size,
            )
        raise ValueError(
            f"Unknown storage backend: {backend}. Supported: 'local', 'firebase', 's3'"
        )
