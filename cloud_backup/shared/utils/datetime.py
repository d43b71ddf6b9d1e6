"""UTC datetime helpers. Every datetime in the ledger and stores is timezone-aware UTC."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalize to aware UTC; naive values are taken as UTC.

    Needed at persistence boundaries: SQLite drops tzinfo on round trip.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def from_timestamp_utc(timestamp: float) -> datetime:
    """Aware UTC datetime from a Unix timestamp (e.g. a file's st_mtime)."""
    return datetime.fromtimestamp(timestamp, tz=UTC)


def epoch_millis(dt: datetime) -> int:
    """Milliseconds since the Unix epoch, as used in object key prefixes."""
    return int(dt.timestamp() * 1000)
