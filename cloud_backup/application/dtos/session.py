"""DTO for an authenticated session (owned by the session gate)."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from cloud_backup.shared.utils.datetime import utc_now


@dataclass(frozen=True)
class Session:
    """Authenticated principal plus the tokens the identity provider issued.

    principal_id is opaque and stable per user; it is the owner id of every
    file record the user creates.
    """

    principal_id: str
    email: str
    id_token: str
    refresh_token: str
    expires_at: datetime

    def is_expired(
        self,
        now: datetime | None = None,
        skew: timedelta = timedelta(0),
    ) -> bool:
        """Return True when the ID token is expired (or expires within skew)."""
        return (now or utc_now()) + skew >= self.expires_at

    def __repr__(self) -> str:
        return f"Session(principal_id={self.principal_id!r}, email={self.email!r})"
