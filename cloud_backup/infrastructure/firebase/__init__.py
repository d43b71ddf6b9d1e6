"""Firebase integration: Firestore REST client, Firebase Auth identity provider, Firestore file ledger."""

from cloud_backup.infrastructure.firebase.client import (
    close_firebase,
    init_firebase,
)

__all__ = [
    "close_firebase",
    "init_firebase",
]
