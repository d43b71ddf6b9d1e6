"""Identity provider interface (port) used by the session gate."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from cloud_backup.application.dtos.session import Session


class IIdentityProvider(Protocol):
    """Protocol for the external identity provider (DIP).

    Implementations raise InvalidCredentialsException, AccountExistsException,
    WeakCredentialException or ProviderUnavailableException.
    """

    async def authenticate(self, email: str, password: str) -> Session:
        """Sign in with email/password and return a new session."""

    async def register(self, email: str, password: str) -> Session:
        """Create an account and return its first session."""

    async def refresh(self, session: Session) -> Session:
        """Exchange the refresh token for a fresh ID token.

        Raises UnauthenticatedException when the provider rejects the refresh
        token (revoked, disabled account).
        """

    async def deauthenticate(self, session: Session) -> None:
        """Revoke the session's tokens at the provider (best effort)."""
