"""Application interfaces (ports): identity, storage and ledger protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from cloud_backup.infrastructure.
"""

from cloud_backup.application.interfaces.identity import IIdentityProvider
from cloud_backup.application.interfaces.repositories import IFileLedger
from cloud_backup.application.interfaces.storage import IObjectStore

__all__ = [
    "IFileLedger",
    "IIdentityProvider",
    "IObjectStore",
]
