"""Backup context lifespan: startup and shutdown.

Single place for all wiring of infrastructure (shared HTTP client,
identity provider, object store, file ledger) into the Session Gate and
the transaction managers. No business logic here.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import AsyncIterator

import httpx

from cloud_backup.application.interfaces.identity import IIdentityProvider
from cloud_backup.application.interfaces.repositories import IFileLedger
from cloud_backup.application.interfaces.storage import IObjectStore
from cloud_backup.application.services.session_gate import SessionGate
from cloud_backup.application.use_cases.files import (
    DeleteTransactionManager,
    FileQueryService,
    ReconcileOrphansUseCase,
    UploadTransactionManager,
)
from cloud_backup.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class BackupContext:
    """Wired components for one process. Build with open_backup_context()."""

    settings: Settings
    session_gate: SessionGate
    uploads: UploadTransactionManager
    deletes: DeleteTransactionManager
    queries: FileQueryService
    reconciler: ReconcileOrphansUseCase
    object_store: IObjectStore
    ledger: IFileLedger


def _build_identity_provider(
    settings: Settings, http_client: httpx.AsyncClient
) -> IIdentityProvider:
    from cloud_backup.infrastructure.firebase.client import (
        load_service_account_info,
        resolve_project_id,
        service_account_credentials,
    )
    from cloud_backup.infrastructure.firebase.identity import (
        IDENTITY_ADMIN_SCOPE,
        FirebaseIdentityProvider,
    )

    key_dict = load_service_account_info(settings) if settings.has_service_account else None
    admin_credentials = (
        service_account_credentials(key_dict, [IDENTITY_ADMIN_SCOPE]) if key_dict else None
    )
    return FirebaseIdentityProvider(
        settings.firebase_api_key.get_secret_value(),
        http_client,
        admin_credentials=admin_credentials,
        project_id=resolve_project_id(settings, key_dict),
    )


@asynccontextmanager
async def open_backup_context(
    settings: Settings | None = None,
    *,
    identity_provider: IIdentityProvider | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncIterator[BackupContext]:
    """Run startup then yield the wired context; on exit run shutdown.

    Startup order: shared HTTP client, identity provider, object store,
    file ledger (Firestore client or SQL engine + schema). Shutdown closes
    them in reverse. An injected http_client is left open.
    """
    settings = settings or get_settings()

    # ---- Startup ----
    owns_http = http_client is None
    http = http_client if http_client is not None else httpx.AsyncClient(
        timeout=settings.http_timeout_seconds
    )
    engine = None
    firestore_started = False
    object_store: IObjectStore | None = None
    try:
        if identity_provider is None:
            identity_provider = _build_identity_provider(settings, http)

        from cloud_backup.infrastructure.external.storage import StorageFactory

        object_store = StorageFactory.create_object_store(settings, http_client=http)

        ledger: IFileLedger
        if settings.database_backend == "sql":
            from cloud_backup.infrastructure.persistence.database import (
                create_engine_and_sessionmaker,
                create_schema,
            )
            from cloud_backup.infrastructure.persistence.repositories import SqlFileLedger

            engine, session_factory = create_engine_and_sessionmaker(settings)
            await create_schema(engine)
            ledger = SqlFileLedger(session_factory)
        else:
            from cloud_backup.infrastructure.firebase import init_firebase
            from cloud_backup.infrastructure.firebase.repositories import FirestoreFileLedger

            ledger = FirestoreFileLedger(init_firebase(settings, http_client=http))
            firestore_started = True

        gate = SessionGate(
            identity_provider,
            refresh_skew=timedelta(seconds=settings.token_refresh_skew_seconds),
        )
        context = BackupContext(
            settings=settings,
            session_gate=gate,
            uploads=UploadTransactionManager(
                gate,
                object_store,
                ledger,
                max_upload_size=settings.max_upload_size,
                progress_buffer_size=settings.progress_buffer_size,
            ),
            deletes=DeleteTransactionManager(gate, object_store, ledger),
            queries=FileQueryService(
                gate,
                ledger,
                object_store,
                download_url_expiry=timedelta(minutes=settings.download_url_expiry_minutes),
            ),
            reconciler=ReconcileOrphansUseCase(
                object_store,
                ledger,
                grace_period=timedelta(minutes=settings.orphan_grace_minutes),
            ),
            object_store=object_store,
            ledger=ledger,
        )
        logger.info(
            "Backup context ready (ledger=%s, storage=%s)",
            settings.database_backend,
            settings.storage_backend,
        )
        yield context
    finally:
        # ---- Shutdown ----
        if firestore_started:
            from cloud_backup.infrastructure.firebase import close_firebase

            await close_firebase()
        if engine is not None:
            await engine.dispose()
            logger.info("Database engine disposed")
        aclose = getattr(object_store, "aclose", None)
        if aclose is not None:
            await aclose()
        if owns_http:
            await http.aclose()
            logger.info("Shared HTTP client closed")
