"""UploadTransactionManager unit tests with in-memory store and ledger."""

import asyncio
import io
import logging

import pytest

from cloud_backup.domain.enums import UploadState
from cloud_backup.domain.exceptions import (
    MetadataWriteFailedException,
    ObjectWriteFailedException,
    UnauthenticatedException,
    ValidationException,
)

MIB = 1024 * 1024


@pytest.mark.asyncio
async def test_upload_records_object_of_declared_size(uploads, store, ledger, alice) -> None:
    """The returned record's locator resolves to an object of size_bytes bytes."""
    data = b"x" * MIB
    record = await uploads.upload(alice, data, "report.pdf", MIB, content_type="application/pdf")

    assert record.name == "report.pdf"
    assert record.size_bytes == MIB
    assert record.owner_id == alice.principal_id
    assert record.content_type == "application/pdf"
    assert len(store.objects[record.locator]) == MIB
    assert record.locator.startswith(f"users/{alice.principal_id}/")
    assert record.locator.endswith("_report.pdf")
    assert list(ledger.records.values()) == [record]


@pytest.mark.asyncio
async def test_progress_is_monotonic_and_ends_at_one(uploads, alice) -> None:
    seen: list[float] = []
    await uploads.upload(alice, b"x" * MIB, "report.pdf", MIB, on_progress=seen.append)
    assert seen == sorted(seen)
    assert seen[-1] == 1.0
    assert 0.25 in seen


@pytest.mark.asyncio
async def test_progress_iteration_and_handle_state(uploads, alice) -> None:
    handle = await uploads.start_upload(alice, io.BytesIO(b"y" * MIB), "photo.jpg", MIB)
    values = [value async for value in handle.progress]
    record = await handle.result()
    assert values == sorted(values)
    assert values[-1] == 1.0
    assert handle.state is UploadState.COMPLETED
    assert handle.upload_session.locator == record.locator
    assert handle.upload_session.bytes_transferred == MIB
    assert handle.done()


@pytest.mark.asyncio
async def test_stopping_progress_observation_does_not_cancel(uploads, store, alice) -> None:
    store.pause = asyncio.Event()
    handle = await uploads.start_upload(alice, b"z" * MIB, "a.bin", MIB)
    async for value in handle.progress:
        if value > 0:
            break
    store.pause.set()
    record = await handle.result()
    assert record.size_bytes == MIB


@pytest.mark.parametrize(
    ("file_name", "size"),
    [
        ("empty.txt", 0),
        ("negative.txt", -5),
        ("flag.txt", True),
        ("big.iso", 10 * MIB + 1),
        ("", 10),
        ("..", 10),
    ],
)
@pytest.mark.asyncio
async def test_invalid_input_rejected_before_write(uploads, store, ledger, alice, file_name, size) -> None:
    with pytest.raises(ValidationException):
        await uploads.upload(alice, b"", file_name, size)
    assert store.objects == {}
    assert ledger.records == {}


@pytest.mark.asyncio
async def test_upload_requires_live_session(uploads, gate, store, alice) -> None:
    await gate.logout()
    with pytest.raises(UnauthenticatedException):
        await uploads.upload(alice, b"data", "a.txt", 4)
    assert store.objects == {}


@pytest.mark.asyncio
async def test_write_failure_leaves_no_record(uploads, store, ledger, alice) -> None:
    """A failed object write never creates a ledger entry."""
    before = len(await ledger.list_for(alice.principal_id))
    store.fail_write_after = 262144
    handle = await uploads.start_upload(alice, b"x" * MIB, "report.pdf", MIB)
    with pytest.raises(ObjectWriteFailedException) as exc_info:
        await handle.result()
    assert exc_info.value.details["storage_path"] == handle.upload_session.storage_path
    assert handle.state is UploadState.FAILED
    assert len(await ledger.list_for(alice.principal_id)) == before
    assert store.objects == {}


@pytest.mark.asyncio
async def test_short_stream_is_a_write_failure(uploads, store, ledger, alice) -> None:
    with pytest.raises(ObjectWriteFailedException):
        await uploads.upload(alice, b"x" * 50, "short.bin", 100)
    assert ledger.records == {}
    assert store.objects == {}


@pytest.mark.asyncio
async def test_ledger_failure_reports_orphan_locator(uploads, store, ledger, alice) -> None:
    """Object written, record not: the error names the orphaned locator."""
    ledger.fail_insert = True
    handle = await uploads.start_upload(alice, b"x" * 1000, "notes.txt", 1000)
    with pytest.raises(MetadataWriteFailedException) as exc_info:
        await handle.result()
    locator = exc_info.value.details["locator"]
    assert locator in store.objects
    assert handle.state is UploadState.FAILED
    assert ledger.records == {}


@pytest.mark.asyncio
async def test_cancel_during_write(uploads, store, ledger, alice) -> None:
    """Cancelled writes are aborted and never recorded."""
    store.pause = asyncio.Event()
    handle = await uploads.start_upload(alice, b"x" * MIB, "big.bin", MIB)
    await asyncio.wait_for(store.chunk_written.wait(), timeout=1)

    assert handle.cancel() is True
    with pytest.raises(ObjectWriteFailedException) as exc_info:
        await handle.result()
    assert exc_info.value.details["reason"] == "cancelled"
    assert handle.state is UploadState.CANCELLED
    assert store.aborted == [handle.upload_session.storage_path]
    assert store.objects == {}
    assert ledger.records == {}
    assert handle.progress.closed


@pytest.mark.asyncio
async def test_cancel_before_write_starts(uploads, store, ledger, alice) -> None:
    handle = await uploads.start_upload(alice, b"x" * 10, "tiny.txt", 10)
    assert handle.cancel() is True
    with pytest.raises(ObjectWriteFailedException):
        await handle.result()
    assert handle.state is UploadState.CANCELLED
    assert ledger.records == {}


@pytest.mark.asyncio
async def test_cancel_after_completion_is_refused(uploads, alice) -> None:
    handle = await uploads.start_upload(alice, b"x" * 10, "tiny.txt", 10)
    await handle.result()
    assert handle.cancel() is False


@pytest.mark.asyncio
async def test_each_upload_gets_its_own_object(uploads, store, alice) -> None:
    """Same name twice: two independent records and objects."""
    first = await uploads.upload(alice, b"a" * 10, "same.txt", 10)
    second = await uploads.upload(alice, b"b" * 10, "same.txt", 10)
    assert first.id != second.id
    assert first.locator != second.locator
    assert len(store.objects) == 2


@pytest.mark.asyncio
async def test_unawaited_failure_is_retrieved_and_logged(uploads, store, alice, caplog) -> None:
    store.fail_write_after = 0
    caplog.set_level(logging.DEBUG, logger="cloud_backup.application.use_cases.files.upload_transaction")
    handle = await uploads.start_upload(alice, b"x" * 1024, "a.txt", 1024)
    while not handle.done():
        await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert handle.state == UploadState.FAILED
    assert any("ended with" in r.getMessage() for r in caplog.records)
    with pytest.raises(ObjectWriteFailedException):
        await handle.result()
