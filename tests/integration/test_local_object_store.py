"""LocalObjectStore integration tests against a tmp_path storage root."""

import io
from contextlib import aclosing
from pathlib import Path

import pytest

from cloud_backup.infrastructure.exceptions import (
    StorageNotFoundError,
    StoragePermissionError,
    StorageSizeMismatchError,
)
from cloud_backup.infrastructure.external.storage.local_storage import LocalObjectStore


@pytest.fixture
def local_store(tmp_path: Path) -> LocalObjectStore:
    return LocalObjectStore(str(tmp_path / "objects"), chunk_size=4)


async def _write(store: LocalObjectStore, path: str, data: bytes):
    return [s async for s in store.write_resumable(path, io.BytesIO(data), len(data), "text/plain")]


@pytest.mark.asyncio
async def test_write_yields_progress_then_locator(local_store) -> None:
    path = local_store.storage_path_for("uidA", "a.txt")
    snapshots = await _write(local_store, path, b"0123456789")
    assert [s.bytes_transferred for s in snapshots] == [4, 8, 10, 10]
    assert snapshots[-1].locator == path
    assert not any(s.is_complete for s in snapshots[:-1])
    assert (local_store.storage_root / path).read_bytes() == b"0123456789"


@pytest.mark.asyncio
async def test_aborted_write_leaves_nothing(local_store) -> None:
    """Closing the write early removes the partial temp file; no object appears."""
    path = local_store.storage_path_for("uidA", "big.bin")
    async with aclosing(
        local_store.write_resumable(path, io.BytesIO(b"x" * 40), 40, "application/octet-stream")
    ) as writes:
        async for snapshot in writes:
            if snapshot.bytes_transferred >= 8:
                break
    assert await local_store.stat(path) is None
    assert await local_store.list_namespace("users/uidA/") == []
    leftovers = [p for p in local_store.storage_root.rglob("*") if p.is_file()]
    assert leftovers == []


@pytest.mark.asyncio
async def test_size_mismatch_leaves_nothing(local_store) -> None:
    path = local_store.storage_path_for("uidA", "short.bin")
    with pytest.raises(StorageSizeMismatchError):
        async for _ in local_store.write_resumable(path, io.BytesIO(b"abc"), 10, "text/plain"):
            pass
    assert await local_store.stat(path) is None


@pytest.mark.asyncio
async def test_stat_list_and_delete(local_store) -> None:
    a = local_store.storage_path_for("uidA", "a.txt")
    b = local_store.storage_path_for("uidB", "b.txt")
    await _write(local_store, a, b"aaaa")
    await _write(local_store, b, b"bb")

    stored = await local_store.stat(a)
    assert stored is not None
    assert stored.size_bytes == 4
    assert stored.updated_at is not None and stored.updated_at.tzinfo is not None

    listed = await local_store.list_namespace("users/uidA/")
    assert [o.locator for o in listed] == [a]

    assert await local_store.delete(a) is True
    assert await local_store.delete(a) is False
    assert await local_store.stat(a) is None
    assert not (local_store.storage_root / "users" / "uidA").exists()


@pytest.mark.asyncio
async def test_download_url(local_store) -> None:
    path = local_store.storage_path_for("uidA", "a.txt")
    await _write(local_store, path, b"hi")
    url = await local_store.generate_download_url(path)
    assert url.startswith("file://")
    with pytest.raises(StorageNotFoundError):
        await local_store.generate_download_url("users/uidA/missing.txt")


@pytest.mark.asyncio
async def test_traversal_rejected(local_store) -> None:
    with pytest.raises(StoragePermissionError):
        await local_store.stat("../../etc/passwd")
