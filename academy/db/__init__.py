"""SQLAlchemy storage backing the per-user module documents."""
