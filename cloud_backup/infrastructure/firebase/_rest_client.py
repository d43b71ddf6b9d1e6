"""Firestore REST v1 client covering what the file ledger needs.

Service account tokens come from google-auth; requests go through an
httpx.AsyncClient (injected, or owned and closed by aclose()).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import httpx

from cloud_backup.infrastructure.firebase._rest_encoding import (
    _encode_value,
    decode_document,
    encode_document,
)

FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
_BASE = "https://firestore.googleapis.com/v1"


def get_access_token(credentials) -> str:
    """Blocking: refresh google-auth credentials if needed and return the bearer token."""
    if not credentials.valid:
        from google.auth.transport.requests import Request

        credentials.refresh(Request())
    return credentials.token


class DocumentExistsError(Exception):
    """createDocument answered 409: the document id is taken."""


class DocumentSnapshot:
    """Document id plus decoded fields."""

    def __init__(self, id_: str, data: dict):
        self.id = id_
        self._data = data

    def to_dict(self) -> dict:
        return self._data

    @classmethod
    def from_rest(cls, doc: dict) -> "DocumentSnapshot":
        name = doc.get("name", "")
        return cls(name.rsplit("/", 1)[-1], decode_document(doc.get("fields")))


class DocumentReference:
    def __init__(self, client: "FirestoreRESTClient", path: str):
        self._client = client
        self._path = path

    @property
    def id(self) -> str:
        return self._path.rsplit("/", 1)[-1]

    async def get(self) -> DocumentSnapshot | None:
        """Fetch the document; None when it does not exist."""
        resp = await self._client.send("GET", self._path)
        if resp is None:
            return None
        return DocumentSnapshot.from_rest(resp.json())

    async def delete(self, *, must_exist: bool = False) -> bool:
        """Delete the document.

        With must_exist the server checks existence atomically and False is
        returned for a missing document. Without it Firestore treats the
        delete of a missing document as success.
        """
        params = {"currentDocument.exists": "true"} if must_exist else None
        resp = await self._client.send("DELETE", self._path, params=params)
        return resp is not None


_OPERATORS = {"==": "EQUAL", "<": "LESS_THAN", ">": "GREATER_THAN"}


class _Query:
    """Single-field filter plus ordering, run with runQuery in one read."""

    def __init__(self, client: "FirestoreRESTClient", collection_path: str, field: str, op: str, value: Any):
        if op not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {op!r}")
        self._client = client
        self._parent, self._collection_id = collection_path.rsplit("/", 1)
        self._filter = {
            "fieldFilter": {
                "field": {"fieldPath": field},
                "op": _OPERATORS[op],
                "value": _encode_value(value),
            }
        }
        self._order_by: list[dict[str, Any]] = []

    def order_by(self, field: str, direction: str = "ASCENDING") -> "_Query":
        if direction not in ("ASCENDING", "DESCENDING"):
            raise ValueError(f"Unsupported order direction: {direction!r}")
        self._order_by.append({"field": {"fieldPath": field}, "direction": direction})
        return self

    def to_structured_query(self) -> dict[str, Any]:
        structured: dict[str, Any] = {
            "from": [{"collectionId": self._collection_id}],
            "where": self._filter,
        }
        if self._order_by:
            structured["orderBy"] = list(self._order_by)
        return structured

    async def stream(self) -> AsyncIterator[DocumentSnapshot]:
        resp = await self._client.send(
            "POST",
            f"{self._parent}:runQuery",
            json={"structuredQuery": self.to_structured_query()},
        )
        # runQuery returns a list; entries without "document" carry only readTime
        for item in resp.json() if resp is not None else []:
            if "document" in item:
                yield DocumentSnapshot.from_rest(item["document"])


class CollectionReference:
    def __init__(self, client: "FirestoreRESTClient", path: str):
        self._client = client
        self._path = path.rstrip("/")

    def document(self, document_id: str) -> DocumentReference:
        return DocumentReference(self._client, f"{self._path}/{document_id}")

    async def create(self, document_id: str, data: dict[str, Any]) -> None:
        """Create the document; DocumentExistsError if the id is already used."""
        await self._client.send(
            "POST",
            self._path,
            params={"documentId": document_id},
            json=encode_document(data),
        )

    def where(self, field: str, op: str, value: Any) -> _Query:
        return _Query(self._client, self._path, field, op, value)


class FirestoreRESTClient:
    """Firestore over REST with a service account (no firebase-admin)."""

    def __init__(
        self,
        project_id: str,
        credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._project_id = project_id
        self._credentials = credentials
        self._prefix = f"projects/{project_id}/databases/(default)/documents"
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None

    async def aclose(self) -> None:
        """Close the HTTP client only if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    async def get_token(self) -> str:
        return await asyncio.to_thread(get_access_token, self._credentials)

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict | None = None,
    ) -> httpx.Response | None:
        """Send one REST call. Returns None on 404; raises httpx.HTTPStatusError on other errors."""
        resp = await self._http.request(
            method,
            f"{_BASE}/{path}",
            params=params,
            json=json,
            headers={"Authorization": f"Bearer {await self.get_token()}"},
        )
        if resp.status_code == 404:
            return None
        if resp.status_code == 409:
            raise DocumentExistsError(path)
        resp.raise_for_status()
        return resp

    def collection(self, collection_id: str) -> CollectionReference:
        return CollectionReference(self, f"{self._prefix}/{collection_id}")
