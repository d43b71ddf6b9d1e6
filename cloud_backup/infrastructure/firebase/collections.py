"""Firestore collection names (schema-in-code).

Firestore has no DDL or migrations. Collections are created automatically
when you first write a document. Use these constants so collection names
stay consistent.

The file ledger query (owner_id == X ordered by created_at desc) needs a
composite index: files(owner_id ASC, created_at DESC).
"""

COLLECTION_FILES = "files"
