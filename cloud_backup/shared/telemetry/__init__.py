"""Shared telemetry: logging setup."""

from cloud_backup.shared.telemetry.logging import get_logger, setup_logging

__all__ = [
    "setup_logging",
    "get_logger",
]
