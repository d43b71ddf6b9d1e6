"""Process-wide logging setup for scripts and embedding applications."""

import logging
import sys

from cloud_backup.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Per-request lines from these libraries would drown out upload progress.
_NOISY_LOGGERS = ("httpx", "httpcore", "botocore", "urllib3")


def setup_logging(settings: Settings | None = None) -> None:
    """Log to stdout at DEBUG when settings.debug, else INFO."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
