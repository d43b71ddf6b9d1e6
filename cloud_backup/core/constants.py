"""Core constants: storage namespace layout and shared literal values.

Single source of truth for object key structure (DRY). Used by the
object store backends and the reconciliation sweep.
"""

from urllib.parse import quote

# Object keys: users/{owner_id}/{epoch_ms}_{suffix}_{file_name}
STORAGE_USER_PREFIX = "users"
STORAGE_KEY_SEP = "/"

# Resumable uploads: chunk sizes must be multiples of 256 KiB (Cloud Storage rule).
RESUMABLE_CHUNK_GRANULARITY = 256 * 1024

# S3 multipart: every part except the last must be at least 5 MiB.
S3_MIN_PART_SIZE = 5 * 1024 * 1024

# Fallback content type when the caller does not know it.
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def owner_namespace(owner_id: str) -> str:
    """Return the storage prefix that holds every object of one owner (trailing slash).

    Principal ids are opaque, so the segment is percent-encoded (dots too):
    no id can add a path level or step out of users/.
    """
    segment = quote(owner_id, safe="").replace(".", "%2E")
    return f"{STORAGE_USER_PREFIX}{STORAGE_KEY_SEP}{segment}{STORAGE_KEY_SEP}"
