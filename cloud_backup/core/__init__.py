"""Core: config, constants, and component wiring.

Single place for settings and shared constants.
"""

from cloud_backup.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
