"""Application services: session gate and upload progress streaming."""

from cloud_backup.application.services.progress_stream import ProgressStream
from cloud_backup.application.services.session_gate import SessionGate

__all__ = [
    "ProgressStream",
    "SessionGate",
]
