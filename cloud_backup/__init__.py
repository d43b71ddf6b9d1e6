"""Cloud backup core: consistent uploads and deletes across an object store and a file ledger."""

__version__ = "1.0.0"
