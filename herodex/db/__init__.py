"""Database engine, ORM models, and repositories."""
