"""Firestore-backed repositories."""

from cloud_backup.infrastructure.firebase.repositories.file_ledger_firestore import (
    FirestoreFileLedger,
)

__all__ = ["FirestoreFileLedger"]
