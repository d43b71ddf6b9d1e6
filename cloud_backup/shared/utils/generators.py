"""Record ids and object-key suffixes (CUID2)."""

from cuid2 import cuid_wrapper

_cuid = cuid_wrapper()


def generate_cuid() -> str:
    return _cuid()
