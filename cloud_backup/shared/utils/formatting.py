"""File name and size formatting helpers."""

import os

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def format_file_size(size_bytes: int) -> str:
    """Return a human-readable size in base 1024, rounded to two decimals.

    >>> format_file_size(0)
    '0 Bytes'
    >>> format_file_size(1536)
    '1.5 KB'
    """
    if size_bytes < 0:
        raise ValueError("size_bytes must be non-negative")
    exponent = 0
    while size_bytes >= 1024 ** (exponent + 1) and exponent < len(_SIZE_UNITS) - 1:
        exponent += 1
    value = round(size_bytes / 1024**exponent, 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[exponent]}"


def sanitize_filename(filename: str) -> str:
    """Strip path separators and dangerous characters from filename."""
    name = os.path.basename(filename.replace("\\", "/"))
    name = name.replace("\x00", "").strip(". ")
    if not name:
        raise ValueError("Filename is empty or invalid after sanitization")
    return name
