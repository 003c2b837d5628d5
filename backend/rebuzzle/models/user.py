"""User ORM: registered and guest accounts with their identity-signal indexes.

Invariants:
    - id is UUID primary key
    - guest_token, device_id and ip_hash are each UNIQUE: concurrent provisioning for the
      same anonymous client collides here instead of producing a duplicate user
    - ip_hash / last_seen_ip_hash hold hex SHA-256 digests, never raw addresses

Design Decisions:
    - Nullable unique columns: NULLs are distinct in PostgreSQL and SQLite, so
      registered users (no token, no device) never conflict with each other
    - ip_hash is only populated for guests (ADR: one guest account per IP hash)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from rebuzzle.db.base import Base


class User(Base):
    """User account: guest or registered."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_guest: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    guest_token: Mapped[str | None] = mapped_column(
        String(128), nullable=True, unique=True,
    )
    device_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True, unique=True,
    )
    ip_hash: Mapped[str | None] = mapped_column(
        String(64), nullable=True, unique=True,
    )
    last_seen_ip_hash: Mapped[str | None] = mapped_column(
        String(64), nullable=True,
    )
    last_seen_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
