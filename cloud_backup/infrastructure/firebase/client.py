"""Firebase service-account credentials and the Firestore client (REST-based, no firebase-admin).

Credentials come from either FIREBASE_SERVICE_ACCOUNT_KEY (JSON string) or
FIREBASE_SERVICE_ACCOUNT_PATH (file path). The same service account backs
the Firestore ledger, the Cloud Storage object store and token revocation.
"""

import json
import logging
from pathlib import Path

import httpx

from cloud_backup.core.config import Settings, get_settings
from cloud_backup.infrastructure.firebase._rest_client import (
    FIRESTORE_SCOPE,
    FirestoreRESTClient,
)

logger = logging.getLogger(__name__)

_firestore_client: FirestoreRESTClient | None = None


def load_service_account_info(settings: Settings | None = None) -> dict | None:
    """Return service account dict from env key or file path."""
    settings = settings or get_settings()
    key_json = settings.firebase_service_account_key.get_secret_value() if settings.firebase_service_account_key else None
    if key_json:
        try:
            return json.loads(key_json)
        except json.JSONDecodeError as e:
            raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    path = settings.firebase_service_account_path
    if path:
        resolved = Path(path).expanduser().resolve()
        if not resolved.is_file():
            logger.warning(
                "FIREBASE_SERVICE_ACCOUNT_PATH set but file not found: %s (resolved: %s)",
                path,
                resolved,
            )
            return None
        with open(resolved, encoding="utf-8") as f:
            return json.load(f)
    return None


def service_account_credentials(key_dict: dict, scopes: list[str]):
    """Return google.oauth2.service_account.Credentials for the given scopes."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(key_dict, scopes=scopes)


def resolve_project_id(settings: Settings, key_dict: dict | None) -> str | None:
    """FIREBASE_PROJECT_ID wins; otherwise the service account's project_id."""
    if settings.firebase_project_id:
        return settings.firebase_project_id
    return (key_dict or {}).get("project_id")


def init_firebase(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FirestoreRESTClient:
    """Initialize the Firestore client (REST API + google-auth). Idempotent.

    Raises:
        ValueError: Service account missing, unreadable or without project_id.
    """
    global _firestore_client
    if _firestore_client is not None:
        return _firestore_client
    settings = settings or get_settings()
    key_dict = load_service_account_info(settings)
    if not key_dict:
        raise ValueError("Firebase service account credentials are not configured")
    project_id = resolve_project_id(settings, key_dict)
    if not project_id:
        raise ValueError("Firebase service account JSON missing 'project_id'")
    cred = service_account_credentials(key_dict, [FIRESTORE_SCOPE])
    _firestore_client = FirestoreRESTClient(
        project_id,
        cred,
        http_client=http_client,
        timeout=settings.http_timeout_seconds,
    )
    logger.info("Firestore client initialized for project %s", project_id)
    return _firestore_client


async def close_firebase() -> None:
    """Close the Firestore client's HTTP connection pool. Call from shutdown."""
    global _firestore_client
    if _firestore_client is not None:
        await _firestore_client.aclose()
        _firestore_client = None
        logger.info("Firestore HTTP client closed")
