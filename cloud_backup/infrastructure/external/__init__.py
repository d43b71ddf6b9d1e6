"""External service adapters (object storage)."""
