"""Database Metadata: SQLAlchemy Base shared by models and alembic."""
