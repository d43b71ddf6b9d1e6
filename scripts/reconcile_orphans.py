"""Reconcile the object store with the file ledger for one or more owners.

Usage:
    python -m scripts.reconcile_orphans OWNER_ID [OWNER_ID ...] [--apply]
Without --apply only reports orphan objects (stored, no record) and
dangling records (record, no object). With --apply both are removed.
Objects younger than ORPHAN_GRACE_MINUTES are skipped (may be in flight).
"""

import asyncio
import sys

from cloud_backup.application.interfaces.identity import IIdentityProvider
from cloud_backup.core.config import get_settings
from cloud_backup.core.lifespan import open_backup_context
from cloud_backup.domain.exceptions import BackupException, UnauthenticatedException
from cloud_backup.shared.telemetry import get_logger, setup_logging

logger = get_logger(__name__)


class _NoLogin:
    """The sweep never signs anyone in; it works on owner ids directly."""

    async def authenticate(self, email, password):
        raise UnauthenticatedException("reconcile_orphans does not sign in")

    async def register(self, email, password):
        raise UnauthenticatedException("reconcile_orphans does not sign in")

    async def refresh(self, session):
        raise UnauthenticatedException("reconcile_orphans does not sign in")

    async def deauthenticate(self, session):
        return None


async def main() -> None:
    """Run the sweep for each owner id on the command line."""
    args = sys.argv[1:]
    apply = "--apply" in args
    owner_ids = [a for a in args if a != "--apply"]
    if not owner_ids:
        print(__doc__, file=sys.stderr)
        sys.exit(2)

    settings = get_settings()
    setup_logging(settings)
    provider: IIdentityProvider = _NoLogin()
    logger.info("Reconciling %d owner(s) (apply=%s)", len(owner_ids), apply)

    exit_code = 0
    async with open_backup_context(settings, identity_provider=provider) as ctx:
        for owner_id in owner_ids:
            try:
                result = await ctx.reconciler.run(owner_id, apply=apply)
            except BackupException as e:
                logger.error("Reconcile failed for %s: %s", owner_id, e.message)
                print(f"{owner_id}: failed ({e.error_code}: {e.message})", file=sys.stderr)
                exit_code = 1
                continue
            print(
                f"{owner_id}: {len(result.orphan_objects)} orphan object(s), "
                f"{len(result.dangling_records)} dangling record(s), "
                f"{len(result.skipped_recent)} recent object(s) skipped"
            )
            for locator in result.orphan_objects:
                print(f"  orphan   {locator}")
            for record_id in result.dangling_records:
                print(f"  dangling {record_id}")
            if apply:
                print(
                    f"  removed {result.deleted_objects} object(s), "
                    f"{result.deleted_records} record(s)"
                )
    sys.exit(exit_code)


if __name__ == "__main__":
    asyncio.run(main())
