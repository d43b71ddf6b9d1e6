"""FirestoreFileLedger integration tests against a MockTransport Firestore REST emulator."""

import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from google.auth.exceptions import RefreshError

from cloud_backup.application.dtos.file_record import FileRecordCreate
from cloud_backup.domain.exceptions import RecordNotFoundException, StoreUnavailableException
from cloud_backup.infrastructure.firebase._rest_client import FirestoreRESTClient
from cloud_backup.infrastructure.firebase._rest_encoding import decode_document
from cloud_backup.infrastructure.firebase.repositories import FirestoreFileLedger

T0 = datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC)
PREFIX = "projects/demo/databases/(default)/documents"


class FakeCredentials:
    valid = True
    token = "test-token"


class ExpiredCredentials:
    valid = False
    token = None

    def refresh(self, request) -> None:
        raise RefreshError("invalid_grant: account deleted")


class FirestoreEmulator:
    """Just enough of Firestore REST v1 for the files collection."""

    def __init__(self) -> None:
        self.docs: dict[str, dict] = {}
        self.queries: list[dict] = []
        self.fail = False

    def _doc(self, doc_id: str) -> dict:
        return {"name": f"{PREFIX}/files/{doc_id}", "fields": self.docs[doc_id]}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer test-token"
        if self.fail:
            return httpx.Response(503, json={"error": {"message": "unavailable"}})
        path = request.url.path
        if path.endswith("/documents:runQuery"):
            query = json.loads(request.content)["structuredQuery"]
            self.queries.append(query)
            flt = query["where"]["fieldFilter"]
            field, value = flt["field"]["fieldPath"], flt["value"]["stringValue"]
            matches = [
                doc_id
                for doc_id, fields in self.docs.items()
                if fields[field].get("stringValue") == value
            ]
            matches.sort(
                key=lambda d: decode_document(self.docs[d])["created_at"], reverse=True
            )
            if not matches:
                return httpx.Response(200, json=[{"readTime": "2025-01-15T12:00:00Z"}])
            return httpx.Response(200, json=[{"document": self._doc(d)} for d in matches])
        if path.endswith("/documents/files") and request.method == "POST":
            doc_id = request.url.params["documentId"]
            if doc_id in self.docs:
                return httpx.Response(409, json={"error": {"status": "ALREADY_EXISTS"}})
            self.docs[doc_id] = json.loads(request.content)["fields"]
            return httpx.Response(200, json=self._doc(doc_id))
        doc_id = path.rsplit("/", 1)[-1]
        if request.method == "GET":
            if doc_id not in self.docs:
                return httpx.Response(404, json={"error": {"status": "NOT_FOUND"}})
            return httpx.Response(200, json=self._doc(doc_id))
        if request.method == "DELETE":
            if doc_id not in self.docs:
                return httpx.Response(404, json={"error": {"status": "NOT_FOUND"}})
            del self.docs[doc_id]
            return httpx.Response(200, json={})
        return httpx.Response(400)


@pytest.fixture
def emulator() -> FirestoreEmulator:
    return FirestoreEmulator()


@pytest.fixture
async def firestore_ledger(emulator):
    http = httpx.AsyncClient(transport=httpx.MockTransport(emulator))
    client = FirestoreRESTClient("demo", FakeCredentials(), http_client=http)
    yield FirestoreFileLedger(client)
    await http.aclose()


def _create(owner_id: str, name: str, minutes: int = 0) -> FileRecordCreate:
    return FileRecordCreate(
        name=name,
        size_bytes=1048576,
        locator=f"users/{owner_id}/{minutes}_{name}",
        owner_id=owner_id,
        created_at=T0 + timedelta(minutes=minutes),
        content_type="application/pdf",
        download_url=f"https://files.example/{name}",
    )


@pytest.mark.asyncio
async def test_insert_and_get(firestore_ledger, emulator) -> None:
    created = await firestore_ledger.insert(_create("uidA", "report.pdf"))
    assert created.id in emulator.docs
    assert emulator.docs[created.id]["size_bytes"] == {"integerValue": "1048576"}

    found = await firestore_ledger.get_by_id(created.id, "uidA")
    assert found == created
    assert await firestore_ledger.get_by_id(created.id, "uidB") is None
    assert await firestore_ledger.get_by_id("missing", "uidA") is None


@pytest.mark.asyncio
async def test_list_for_filters_on_server(firestore_ledger, emulator) -> None:
    await firestore_ledger.insert(_create("uidA", "old.pdf", minutes=0))
    await firestore_ledger.insert(_create("uidA", "new.pdf", minutes=5))
    await firestore_ledger.insert(_create("uidB", "theirs.pdf"))

    records = await firestore_ledger.list_for("uidA")
    assert [r.name for r in records] == ["new.pdf", "old.pdf"]
    query = emulator.queries[-1]
    assert query["where"]["fieldFilter"]["field"]["fieldPath"] == "owner_id"
    assert query["orderBy"] == [{"field": {"fieldPath": "created_at"}, "direction": "DESCENDING"}]
    assert "limit" not in query
    assert await firestore_ledger.list_for("uidC") == []


@pytest.mark.asyncio
async def test_delete_by_id(firestore_ledger, emulator) -> None:
    created = await firestore_ledger.insert(_create("uidA", "report.pdf"))
    with pytest.raises(RecordNotFoundException):
        await firestore_ledger.delete_by_id(created.id, "uidB")
    await firestore_ledger.delete_by_id(created.id, "uidA")
    assert emulator.docs == {}
    with pytest.raises(RecordNotFoundException):
        await firestore_ledger.delete_by_id(created.id, "uidA")


@pytest.mark.asyncio
async def test_server_errors_map_to_store_unavailable(firestore_ledger, emulator) -> None:
    emulator.fail = True
    with pytest.raises(StoreUnavailableException):
        await firestore_ledger.list_for("uidA")
    with pytest.raises(StoreUnavailableException):
        await firestore_ledger.insert(_create("uidA", "report.pdf"))


@pytest.mark.asyncio
async def test_credential_refresh_failure_maps_to_store_unavailable(emulator) -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(emulator)) as http:
        ledger = FirestoreFileLedger(
            FirestoreRESTClient("demo", ExpiredCredentials(), http_client=http)
        )
        with pytest.raises(StoreUnavailableException):
            await ledger.list_for("uidA")
        with pytest.raises(StoreUnavailableException):
            await ledger.get_by_id("r1", "uidA")
        with pytest.raises(StoreUnavailableException):
            await ledger.insert(_create("uidA", "report.pdf"))
    assert emulator.docs == {}
