"""Infrastructure: adapters for the identity provider, object stores and file ledgers."""
