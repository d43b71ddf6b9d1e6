"""Shared utilities: datetime, generators, formatting."""

from cloud_backup.shared.utils.datetime import (
    ensure_utc,
    from_timestamp_utc,
    utc_now,
)
from cloud_backup.shared.utils.formatting import format_file_size, sanitize_filename
from cloud_backup.shared.utils.generators import generate_cuid

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "from_timestamp_utc",
    "format_file_size",
    "sanitize_filename",
]
