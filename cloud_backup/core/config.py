"""Settings for the backup core, read from the environment and .env.

Backend combinations (ledger, object store, identity provider) are
checked when the settings load.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cloud_backup.core.constants import RESUMABLE_CHUNK_GRANULARITY


class Settings(BaseSettings):
    """Backup core settings.

    All settings have defaults; validate_backends rejects combinations
    that cannot work (e.g. Firestore ledger without service account
    credentials, Firebase storage without a bucket).
    """

    # App
    app_name: str = "cloud-backup"
    app_version: str = "1.0.0"
    debug: bool = False

    # Metadata store (file ledger): "firestore" (REST) or "sql" (SQLAlchemy async)
    database_backend: str = "firestore"
    database_url: str = ""
    database_echo: bool = False

    # Firebase: web API key for Identity Toolkit, service account for Firestore / Storage.
    firebase_api_key: SecretStr = SecretStr("")
    firebase_project_id: str | None = None
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None  # Path to JSON file

    # Object store
    storage_backend: str = "local"
    storage_root: str = "/var/cloud-backup/storage"
    storage_bucket: str | None = None
    s3_region: str = "us-east-1"
    s3_endpoint_url: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: SecretStr | None = None

    # Uploads
    upload_chunk_size: int = 8 * RESUMABLE_CHUNK_GRANULARITY  # 2 MiB
    max_upload_size: int = 100 * 1024 * 1024  # 100MB
    progress_buffer_size: int = 64
    download_url_expiry_minutes: int = 60

    # Network
    http_timeout_seconds: float = 30.0

    # Sessions: refresh ID tokens this many seconds before they expire.
    token_refresh_skew_seconds: int = 60

    # Reconciliation: objects younger than this may belong to an in-flight upload.
    orphan_grace_minutes: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_backends(self) -> "Settings":
        """Validate metadata store, object store and upload settings.

        - sql: DATABASE_URL required.
        - firestore: FIREBASE_SERVICE_ACCOUNT_KEY or FIREBASE_SERVICE_ACCOUNT_PATH required.
        - firebase / s3 storage: STORAGE_BUCKET required.
        """
        if self.database_backend == "sql":
            if not self.database_url:
                raise ValueError(
                    "DATABASE_URL is required when database_backend is 'sql' "
                    "(e.g. sqlite+aiosqlite:///./cloud-backup.db)."
                )
        elif self.database_backend == "firestore":
            if not self.has_service_account:
                raise ValueError(
                    "When database_backend is 'firestore', set FIREBASE_SERVICE_ACCOUNT_KEY (full JSON string) "
                    "or FIREBASE_SERVICE_ACCOUNT_PATH (path to JSON file)."
                )
        else:
            raise ValueError(
                f"database_backend must be 'firestore' or 'sql', got: {self.database_backend!r}"
            )

        backend = self.storage_backend.lower()
        if backend in ("firebase", "s3"):
            if not self.storage_bucket:
                raise ValueError(
                    f"storage_bucket is required when storage_backend is '{backend}'. "
                    "Set STORAGE_BUCKET environment variable or update .env file."
                )
            if backend == "firebase" and not self.has_service_account:
                raise ValueError(
                    "storage_backend 'firebase' needs service account credentials "
                    "(FIREBASE_SERVICE_ACCOUNT_KEY or FIREBASE_SERVICE_ACCOUNT_PATH)."
                )
        elif backend != "local":
            raise ValueError(
                f"Invalid storage_backend '{self.storage_backend}'. "
                "Must be one of: 'local', 'firebase', 's3'"
            )

        if (
            self.upload_chunk_size <= 0
            or self.upload_chunk_size % RESUMABLE_CHUNK_GRANULARITY
        ):
            raise ValueError(
                f"upload_chunk_size must be a positive multiple of {RESUMABLE_CHUNK_GRANULARITY} bytes"
            )
        if self.max_upload_size <= 0:
            raise ValueError("max_upload_size must be positive")
        return self

    @property
    def has_service_account(self) -> bool:
        """True when a Firebase service account key or key file is configured."""
        has_key = bool(
            self.firebase_service_account_key
            and self.firebase_service_account_key.get_secret_value()
        )
        return has_key or bool(self.firebase_service_account_path)


@lru_cache
def get_settings() -> Settings:
    """Process-wide Settings, built and validated on first call.

    Tests clear the cache (get_settings.cache_clear()) between env overrides.
    """
    return Settings()
