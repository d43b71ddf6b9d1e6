"""Reconciliation sweep: find and optionally repair partial-failure leftovers.

Orphan object: stored under the owner's namespace but no record refers to it
(left by MetadataWriteFailedException). Dangling record: a record whose
locator no longer resolves (left by MetadataDeleteFailedException).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from cloud_backup.application.dtos.reconcile import ReconcileResult
from cloud_backup.core.constants import owner_namespace
from cloud_backup.domain.exceptions import RecordNotFoundException
from cloud_backup.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from cloud_backup.application.interfaces.repositories import IFileLedger
    from cloud_backup.application.interfaces.storage import IObjectStore

logger = logging.getLogger(__name__)


class ReconcileOrphansUseCase:
    """Diffs one owner's store namespace against their ledger records.

    Objects younger than grace_period are never treated as orphans: their
    upload may still be between the object write and the record insert.
    """

    def __init__(
        self,
        object_store: IObjectStore,
        ledger: IFileLedger,
        *,
        grace_period: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = object_store
        self._ledger = ledger
        self._grace_period = grace_period
        self._clock = clock

    async def run(self, owner_id: str, *, apply: bool = False) -> ReconcileResult:
        """Report (and with apply=True, remove) orphan objects and dangling records."""
        objects = await self._store.list_namespace(owner_namespace(owner_id))
        records = await self._ledger.list_for(owner_id)

        referenced = {r.locator for r in records}
        stored = {o.locator for o in objects}
        cutoff = self._clock() - self._grace_period

        orphan_objects: list[str] = []
        skipped_recent: list[str] = []
        for obj in objects:
            if obj.locator in referenced:
                continue
            if obj.updated_at is not None and obj.updated_at > cutoff:
                skipped_recent.append(obj.locator)
            else:
                orphan_objects.append(obj.locator)

        dangling_records: list[str] = []
        for record in records:
            if record.locator in stored:
                continue
            # Locator may sit outside the listed namespace; confirm before flagging.
            if await self._store.stat(record.locator) is None:
                dangling_records.append(record.id)

        deleted_objects = 0
        deleted_records = 0
        if apply:
            for locator in orphan_objects:
                if await self._store.delete(locator):
                    deleted_objects += 1
                logger.info("Removed orphan object %s", locator)
            for record_id in dangling_records:
                try:
                    await self._ledger.delete_by_id(record_id, owner_id)
                    deleted_records += 1
                except RecordNotFoundException:
                    pass
                logger.info("Removed dangling record %s", record_id)

        result = ReconcileResult(
            owner_id=owner_id,
            orphan_objects=orphan_objects,
            dangling_records=dangling_records,
            skipped_recent=skipped_recent,
            deleted_objects=deleted_objects,
            deleted_records=deleted_records,
            applied=apply,
        )
        if not result.is_consistent:
            logger.warning(
                "Owner %s: %d orphan object(s), %d dangling record(s)%s",
                owner_id,
                len(orphan_objects),
                len(dangling_records),
                " (repaired)" if apply else "",
            )
        return result
