"""Persistence: SQLAlchemy async engine, ORM models and the SQL file ledger."""
