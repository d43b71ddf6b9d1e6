"""Pytest configuration and fixtures for cloud_backup.

Services are wired against the in-memory fakes in tests.fakes; adapter
tests build their own clients (httpx.MockTransport, tmp_path, SQLite).
"""

import pytest

from cloud_backup.application.services.session_gate import SessionGate
from cloud_backup.application.use_cases.files import (
    DeleteTransactionManager,
    FileQueryService,
    ReconcileOrphansUseCase,
    UploadTransactionManager,
)
from cloud_backup.core.config import Settings, get_settings
from tests.fakes import FakeIdentityProvider, InMemoryFileLedger, InMemoryObjectStore

ALICE = ("alice@example.com", "correct-horse", "uidA")
BOB = ("bob@example.com", "battery-staple", "uidB")


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Each test sees fresh environment-derived settings."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sql_settings(tmp_path) -> Settings:
    """Settings for SQLite ledger + local object store under tmp_path."""
    return Settings(
        _env_file=None,
        database_backend="sql",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        storage_backend="local",
        storage_root=str(tmp_path / "objects"),
    )


@pytest.fixture
def identity() -> FakeIdentityProvider:
    provider = FakeIdentityProvider()
    provider.add_account(*ALICE)
    provider.add_account(*BOB)
    return provider


@pytest.fixture
def gate(identity) -> SessionGate:
    return SessionGate(identity)


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def ledger() -> InMemoryFileLedger:
    return InMemoryFileLedger()


@pytest.fixture
def uploads(gate, store, ledger) -> UploadTransactionManager:
    return UploadTransactionManager(gate, store, ledger, max_upload_size=10 * 1024 * 1024)


@pytest.fixture
def deletes(gate, store, ledger) -> DeleteTransactionManager:
    return DeleteTransactionManager(gate, store, ledger)


@pytest.fixture
def queries(gate, store, ledger) -> FileQueryService:
    return FileQueryService(gate, ledger, store)


@pytest.fixture
def reconciler(store, ledger) -> ReconcileOrphansUseCase:
    return ReconcileOrphansUseCase(store, ledger)


@pytest.fixture
async def alice(gate):
    """Alice signed in through the gate."""
    email, password, _ = ALICE
    return await gate.login(email, password)
