"""ORM Models: one module per table, imported by alembic/env.py for metadata."""
