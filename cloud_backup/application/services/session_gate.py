"""Session gate: the single owner of the current authenticated session.

Wraps the identity provider. Consumers never read ambient auth state; they
take a Session value and have it re-verified here before touching storage.
Login, logout and expiry-driven logout are published as a change stream.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from datetime import timedelta
from typing import TYPE_CHECKING

from cloud_backup.domain.exceptions import (
    InvalidCredentialsException,
    UnauthenticatedException,
    WeakCredentialException,
)

if TYPE_CHECKING:
    from cloud_backup.application.dtos.session import Session
    from cloud_backup.application.interfaces.identity import IIdentityProvider

logger = logging.getLogger(__name__)

SessionListener = Callable[["Session | None"], None]


class SessionGate:
    """Resolves the current principal and rejects operations without one."""

    def __init__(
        self,
        provider: IIdentityProvider,
        *,
        refresh_skew: timedelta = timedelta(seconds=60),
        buffer_size: int = 16,
    ) -> None:
        self._provider = provider
        self._refresh_skew = refresh_skew
        self._buffer_size = buffer_size
        self._session: Session | None = None
        self._listeners: list[SessionListener] = []
        self._queues: list[asyncio.Queue] = []

    # ---- Observation ----

    def current_session(self) -> Session | None:
        """Return the latest known session, or None when signed out."""
        return self._session

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call listener on every session change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def changes(self) -> AsyncIterator[Session | None]:
        """Yield the current session, then each change (None on logout or expiry)."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._buffer_size)
        queue.put_nowait(self._session)
        self._queues.append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._queues.remove(queue)

    def _set_session(self, session: Session | None) -> None:
        if session is self._session:
            return
        self._session = session
        for queue in self._queues:
            while True:
                try:
                    queue.put_nowait(session)
                    break
                except asyncio.QueueFull:
                    queue.get_nowait()
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                logger.exception("Session listener failed")

    # ---- Preconditions ----

    async def require_session(self) -> Session:
        """Return a valid session, refreshing an expired ID token first.

        Raises:
            UnauthenticatedException: No session, or the provider rejected the refresh.
            ProviderUnavailableException: The token needed a refresh and the provider is down.
        """
        session = self._session
        if session is None:
            raise UnauthenticatedException()
        if session.is_expired(skew=self._refresh_skew):
            session = await self._refresh(session)
        return session

    async def verify(self, session: Session) -> Session:
        """Re-check a caller-held session against the live state.

        Returns the live (possibly refreshed) session for the same principal.
        """
        current = await self.require_session()
        if current.principal_id != session.principal_id:
            raise UnauthenticatedException("Session is no longer active")
        return current

    async def _refresh(self, session: Session) -> Session:
        try:
            refreshed = await self._provider.refresh(session)
        except UnauthenticatedException:
            if self._session is session:
                logger.info(
                    "Session expired and could not be refreshed; signing out %s",
                    session.principal_id,
                )
                self._set_session(None)
            raise
        if self._session is not session:
            # Logged out (or switched user) while the refresh was in flight.
            if self._session is None:
                raise UnauthenticatedException()
            return self._session
        self._set_session(refreshed)
        return refreshed

    # ---- Authentication ----

    async def login(self, email: str, password: str) -> Session:
        """Sign in and make the new session current.

        Raises:
            InvalidCredentialsException: Blank input or rejected by the provider.
            ProviderUnavailableException: Provider unreachable.
        """
        email = email.strip()
        if not email or not password:
            raise InvalidCredentialsException("Email and password are required")
        session = await self._provider.authenticate(email, password)
        self._set_session(session)
        logger.info("Signed in %s", session.principal_id)
        return session

    async def signup(self, email: str, password: str) -> Session:
        """Create an account, sign in as it, and make the session current.

        Raises:
            AccountExistsException, WeakCredentialException, ProviderUnavailableException.
        """
        email = email.strip()
        if not email:
            raise InvalidCredentialsException("Email is required")
        if not password:
            raise WeakCredentialException("Password is required")
        session = await self._provider.register(email, password)
        self._set_session(session)
        logger.info("Registered and signed in %s", session.principal_id)
        return session

    async def logout(self) -> bool:
        """Clear the local session, then revoke it at the provider.

        Idempotent. The local session is cleared even when the provider call
        fails; that failure is logged and reported by returning False.
        """
        session = self._session
        if session is None:
            return True
        self._set_session(None)
        logger.info("Signed out %s", session.principal_id)
        try:
            await self._provider.deauthenticate(session)
        except Exception as e:
            logger.warning(
                "Provider sign-out failed for %s (%s); local session cleared",
                session.principal_id,
                getattr(e, "error_code", type(e).__name__),
            )
            return False
        return True
