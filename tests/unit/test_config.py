"""Unit tests for Settings backend validation."""

import pytest
from pydantic import ValidationError

from cloud_backup.core.config import Settings


def _settings(**overrides) -> Settings:
    values = {
        "database_backend": "sql",
        "database_url": "sqlite+aiosqlite:///:memory:",
        "storage_backend": "local",
        "storage_root": "/tmp/cloud-backup-test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_sql_local_is_valid() -> None:
    settings = _settings()
    assert settings.database_backend == "sql"
    assert settings.upload_chunk_size == 2 * 1024 * 1024


def test_sql_requires_url() -> None:
    with pytest.raises(ValidationError, match="DATABASE_URL"):
        _settings(database_url="")


def test_firestore_requires_service_account() -> None:
    with pytest.raises(ValidationError, match="FIREBASE_SERVICE_ACCOUNT"):
        _settings(database_backend="firestore")


def test_firestore_with_key_path_is_valid() -> None:
    settings = _settings(
        database_backend="firestore",
        firebase_service_account_path="/secrets/sa.json",
    )
    assert settings.has_service_account


def test_unknown_database_backend_rejected() -> None:
    with pytest.raises(ValidationError, match="database_backend"):
        _settings(database_backend="mongo")


@pytest.mark.parametrize("backend", ["firebase", "s3"])
def test_bucket_required_for_remote_storage(backend: str) -> None:
    with pytest.raises(ValidationError, match="storage_bucket"):
        _settings(storage_backend=backend, firebase_service_account_path="/secrets/sa.json")


def test_firebase_storage_needs_credentials() -> None:
    with pytest.raises(ValidationError, match="service account"):
        _settings(storage_backend="firebase", storage_bucket="demo.appspot.com")


def test_unknown_storage_backend_rejected() -> None:
    with pytest.raises(ValidationError, match="storage_backend"):
        _settings(storage_backend="ftp")


def test_chunk_size_must_be_granular() -> None:
    with pytest.raises(ValidationError, match="upload_chunk_size"):
        _settings(upload_chunk_size=1000)


def test_env_overrides(monkeypatch) -> None:
    """Environment variables are read case-insensitively."""
    monkeypatch.setenv("DATABASE_BACKEND", "sql")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("MAX_UPLOAD_SIZE", "1024")
    settings = Settings(_env_file=None)
    assert settings.max_upload_size == 1024
