"""DTOs for the orphan reconciliation sweep."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ReconcileResult:
    """Summary of one owner's reconciliation run.

    orphan_objects: locators stored under the owner's namespace with no record.
    dangling_records: record ids whose locator no longer resolves.
    skipped_recent: orphan candidates younger than the grace period (possibly in flight).
    """

    owner_id: str
    orphan_objects: list[str] = field(default_factory=list)
    dangling_records: list[str] = field(default_factory=list)
    skipped_recent: list[str] = field(default_factory=list)
    deleted_objects: int = 0
    deleted_records: int = 0
    applied: bool = False

    @property
    def is_consistent(self) -> bool:
        return not self.orphan_objects and not self.dangling_records
