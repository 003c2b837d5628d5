"""Infrastructure: database sessions, store implementations, external clients, logging."""
