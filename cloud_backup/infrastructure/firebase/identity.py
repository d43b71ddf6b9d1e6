"""Firebase Authentication over REST (Identity Toolkit + Secure Token APIs).

Email/password sign-in and sign-up use the project's web API key. Logout
revokes refresh tokens through the admin accounts:update endpoint when
service-account credentials are available; without them there is nothing
to revoke server-side and logout is local only.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import httpx
from google.auth.exceptions import GoogleAuthError

from cloud_backup.application.dtos.session import Session
from cloud_backup.domain.exceptions import (
    AccountExistsException,
    InvalidCredentialsException,
    ProviderUnavailableException,
    UnauthenticatedException,
    WeakCredentialException,
)
from cloud_backup.infrastructure.firebase._rest_client import get_access_token
from cloud_backup.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

IDENTITY_ADMIN_SCOPE = "https://www.googleapis.com/auth/identitytoolkit"
_IDENTITY_BASE = "https://identitytoolkit.googleapis.com/v1"
_SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

_INVALID_CREDENTIAL_CODES = frozenset(
    {
        "EMAIL_NOT_FOUND",
        "INVALID_PASSWORD",
        "INVALID_LOGIN_CREDENTIALS",
        "INVALID_EMAIL",
        "USER_DISABLED",
        "MISSING_PASSWORD",
        "MISSING_EMAIL",
    }
)
_REFRESH_REJECTED_CODES = frozenset(
    {
        "TOKEN_EXPIRED",
        "USER_DISABLED",
        "USER_NOT_FOUND",
        "INVALID_REFRESH_TOKEN",
        "INVALID_GRANT_TYPE",
        "MISSING_REFRESH_TOKEN",
    }
)


def _error_code(resp: httpx.Response) -> tuple[str, str]:
    """Return (CODE, full message) from a Firebase error body such as 'WEAK_PASSWORD : Password should be ...'."""
    try:
        message = resp.json().get("error", {}).get("message", "")
    except ValueError:
        message = ""
    code = message.split(":", 1)[0].strip()
    return code, message


class FirebaseIdentityProvider:
    """Identity provider backed by Firebase Authentication (implements IIdentityProvider)."""

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient,
        *,
        admin_credentials: Any | None = None,
        project_id: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not api_key:
            raise ValueError("FIREBASE_API_KEY is required for Firebase Authentication")
        self._api_key = api_key
        self._http = http_client
        self._admin_credentials = admin_credentials
        self._project_id = project_id
        self._clock = clock

    async def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._http.post(url, params={"key": self._api_key}, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderUnavailableException(str(e)) from e
        if resp.status_code >= 500 or resp.status_code == 429:
            raise ProviderUnavailableException(f"HTTP {resp.status_code}")
        return resp

    def _session_from(
        self,
        *,
        principal_id: str,
        email: str,
        id_token: str,
        refresh_token: str,
        expires_in: str | int,
    ) -> Session:
        return Session(
            principal_id=principal_id,
            email=email,
            id_token=id_token,
            refresh_token=refresh_token,
            expires_at=self._clock() + timedelta(seconds=int(expires_in)),
        )

    async def authenticate(self, email: str, password: str) -> Session:
        """Sign in with email/password (accounts:signInWithPassword)."""
        resp = await self._post(
            f"{_IDENTITY_BASE}/accounts:signInWithPassword",
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        if resp.status_code != 200:
            code, message = _error_code(resp)
            if code in _INVALID_CREDENTIAL_CODES:
                raise InvalidCredentialsException()
            if code == "TOO_MANY_ATTEMPTS_TRY_LATER":
                raise ProviderUnavailableException(message)
            logger.warning("Unexpected sign-in error from Firebase: %s", message or resp.status_code)
            raise InvalidCredentialsException()
        data = resp.json()
        return self._session_from(
            principal_id=data["localId"],
            email=data.get("email", email),
            id_token=data["idToken"],
            refresh_token=data["refreshToken"],
            expires_in=data.get("expiresIn", 3600),
        )

    async def register(self, email: str, password: str) -> Session:
        """Create an email/password account (accounts:signUp) and return its session."""
        resp = await self._post(
            f"{_IDENTITY_BASE}/accounts:signUp",
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        if resp.status_code != 200:
            code, message = _error_code(resp)
            if code == "EMAIL_EXISTS":
                raise AccountExistsException(email)
            if code == "WEAK_PASSWORD":
                reason = message.split(":", 1)[1].strip() if ":" in message else "Password is too weak"
                raise WeakCredentialException(reason)
            if code in _INVALID_CREDENTIAL_CODES:
                raise InvalidCredentialsException(message or "Invalid email or password")
            if code == "TOO_MANY_ATTEMPTS_TRY_LATER":
                raise ProviderUnavailableException(message)
            raise ProviderUnavailableException(message or f"HTTP {resp.status_code}")
        data = resp.json()
        return self._session_from(
            principal_id=data["localId"],
            email=data.get("email", email),
            id_token=data["idToken"],
            refresh_token=data["refreshToken"],
            expires_in=data.get("expiresIn", 3600),
        )

    async def refresh(self, session: Session) -> Session:
        """Exchange the refresh token for a new ID token (Secure Token API)."""
        resp = await self._post(
            _SECURE_TOKEN_URL,
            data={"grant_type": "refresh_token", "refresh_token": session.refresh_token},
        )
        if resp.status_code != 200:
            code, message = _error_code(resp)
            if code in _REFRESH_REJECTED_CODES or resp.status_code in (400, 401, 403):
                raise UnauthenticatedException(f"Session expired: {code or resp.status_code}")
            raise ProviderUnavailableException(message or f"HTTP {resp.status_code}")
        data = resp.json()
        return self._session_from(
            principal_id=data.get("user_id", session.principal_id),
            email=session.email,
            id_token=data["id_token"],
            refresh_token=data["refresh_token"],
            expires_in=data.get("expires_in", 3600),
        )

    async def deauthenticate(self, session: Session) -> None:
        """Revoke the user's refresh tokens (validSince = now) when admin credentials exist."""
        if self._admin_credentials is None or not self._project_id:
            logger.debug("No admin credentials; sign-out of %s is local only", session.principal_id)
            return
        try:
            token = await asyncio.to_thread(get_access_token, self._admin_credentials)
        except GoogleAuthError as e:
            raise ProviderUnavailableException(f"Admin credentials unusable: {e}") from e
        url = f"{_IDENTITY_BASE}/projects/{self._project_id}/accounts:update"
        body = {
            "localId": session.principal_id,
            "validSince": str(int(self._clock().timestamp())),
        }
        try:
            resp = await self._http.post(
                url, json=body, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.HTTPError as e:
            raise ProviderUnavailableException(str(e)) from e
        if resp.status_code != 200:
            _, message = _error_code(resp)
            raise ProviderUnavailableException(message or f"HTTP {resp.status_code}")
