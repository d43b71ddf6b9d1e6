"""Delete transaction: remove the object, then the ledger record.

The object goes first. If its delete fails, the record still points at a
live object and the whole operation can simply be retried. The reverse order
could drop the record and then fail on the object, leaving an object nothing
refers to and nothing would ever retry.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cloud_backup.domain.exceptions import (
    AuthorizationException,
    MetadataDeleteFailedException,
    ObjectDeleteFailedException,
    RecordNotFoundException,
)

if TYPE_CHECKING:
    from cloud_backup.application.dtos.file_record import FileRecord
    from cloud_backup.application.dtos.session import Session
    from cloud_backup.application.interfaces.repositories import IFileLedger
    from cloud_backup.application.interfaces.storage import IObjectStore
    from cloud_backup.application.services.session_gate import SessionGate

logger = logging.getLogger(__name__)


class DeleteTransactionManager:
    """Coordinates object delete and ledger delete with a fixed order."""

    def __init__(
        self,
        session_gate: SessionGate,
        object_store: IObjectStore,
        ledger: IFileLedger,
    ) -> None:
        self.session_gate = session_gate
        self.store = object_store
        self.ledger = ledger

    async def delete(self, session: Session, record: FileRecord) -> None:
        """Delete record's object and then the record itself.

        The locator is taken from the ledger's copy of the record, never from
        the one passed in.

        Raises:
            UnauthenticatedException: session is no longer live.
            AuthorizationException: record belongs to another principal.
            RecordNotFoundException: no such record in the caller's ledger scope.
            ObjectDeleteFailedException: object delete failed; record untouched, retry later.
            MetadataDeleteFailedException: object gone, record remains (dangling record id in details).
        """
        live = await self.session_gate.verify(session)
        if record.owner_id != live.principal_id:
            raise AuthorizationException(resource="file", action="delete")
        stored = await self.ledger.get_by_id(record.id, live.principal_id)
        if stored is None:
            raise RecordNotFoundException(record.id)
        record = stored

        try:
            deleted = await self.store.delete(record.locator)
        except Exception as e:
            logger.warning(
                "Object delete failed for record %s (%s); record kept: %s",
                record.id,
                record.locator,
                e,
            )
            raise ObjectDeleteFailedException(record.locator, record.id, str(e)) from e
        if not deleted:
            logger.warning(
                "Object %s for record %s was already gone", record.locator, record.id
            )

        try:
            await self.ledger.delete_by_id(record.id, live.principal_id)
        except RecordNotFoundException:
            logger.info("Record %s was already removed", record.id)
        except Exception as e:
            logger.error(
                "Object %s deleted but record %s remains (dangling) until reconciled: %s",
                record.locator,
                record.id,
                e,
            )
            raise MetadataDeleteFailedException(record.id, record.locator, str(e)) from e
        else:
            logger.info("Deleted record %s (%s)", record.id, record.name)
