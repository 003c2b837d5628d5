"""SQL Stores: SQLAlchemy async implementations of the core store protocols.

Invariants:
    - Every write is ONE statement guarded by a unique constraint or NOT EXISTS:
      there is no read-then-write path anywhere in this module
    - Only UNIQUE conflicts are translated (UniqueViolationError or False), after a
      rollback so the shared request session stays usable; any other IntegrityError
      (foreign key, NOT NULL) is rolled back and re-raised
    - Every call runs under timeout_seconds; expiry rolls back and raises
      StoreTimeoutError (retryable)
    - ORM rows never escape: callers receive frozen records from core/domain_types.py

Design Decisions:
    - One store class per table, sharing a request-scoped AsyncSession
      (ADR: handler objects take `db` in __init__, like the other shell classes)
    - INSERT ... SELECT ... WHERE NOT EXISTS for in-progress attempts: the day-closed
      check and the write are a single statement
"""

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Awaitable, TypeVar

from sqlalchemy import (
    Boolean, Date, DateTime, Integer, String, Text,
    exists, insert, literal, select, update,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rebuzzle.core.domain_types import (
    AttemptId, DailyAttempt, GuestToken, IpHash, PuzzleId, StatsRecord,
    UserId, UserRecord,
)
from rebuzzle.core.errors import StoreTimeoutError, UniqueViolationError
from rebuzzle.models.daily_attempt import DailyAttempt as DailyAttemptRow
from rebuzzle.models.user import User
from rebuzzle.models.user_stats import UserStats

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS: float = 5.0
FINAL_PER_DAY_CONSTRAINT = "uq_daily_attempts_final_per_day"


def _is_unique_violation(error: IntegrityError, *markers: str) -> bool:
    """True for UNIQUE conflicts only (optionally on a specific constraint).

    PostgreSQL reports `violates unique constraint "<name>"`, SQLite reports
    `UNIQUE constraint failed: <table>.<column>`; foreign-key, NOT NULL and
    CHECK failures never match.
    """
    message = str(error.orig).lower()
    if "unique constraint" not in message:
        return False
    return not markers or any(m.lower() in message for m in markers)


def _aware(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_user(row: User) -> UserRecord:
    return UserRecord(
        id=UserId(row.id),
        is_guest=row.is_guest,
        username=row.username,
        guest_token=GuestToken(row.guest_token) if row.guest_token else None,
        device_id=row.device_id,
        ip_hash=IpHash(row.ip_hash) if row.ip_hash else None,
        email=row.email,
        created_at=_aware(row.created_at),
    )


def _to_stats(row: UserStats) -> StatsRecord:
    return StatsRecord(
        user_id=UserId(row.user_id),
        points=row.points,
        streak=row.streak,
        max_streak=row.max_streak,
        total_games=row.total_games,
        wins=row.wins,
        level=row.level,
        streak_freezes=row.streak_freezes,
    )


def _to_attempt(row: DailyAttemptRow) -> DailyAttempt:
    return DailyAttempt(
        id=AttemptId(row.id),
        user_id=UserId(row.user_id),
        puzzle_id=PuzzleId(row.puzzle_id),
        attempted_answer=row.attempted_answer,
        is_correct=row.is_correct,
        abandoned=row.abandoned,
        attempt_number=row.attempt_number,
        max_attempts=row.max_attempts,
        time_spent_seconds=row.time_spent_seconds,
        attempted_at=_aware(row.attempted_at),
        completed_at=_aware(row.completed_at),
        day_key=row.day_key,
    )


class _SqlStore:
    """Shared session handling and time budget."""

    def __init__(
        self, db: AsyncSession, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.db = db
        self.timeout_seconds = timeout_seconds

    async def _bounded(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            await self.db.rollback()
            logger.warning(
                "Store call timed out",
                extra={"operation": operation, "error_code": "STORE_TIMEOUT"},
            )
            raise StoreTimeoutError(operation, self.timeout_seconds)


class SqlUserStore(_SqlStore):

    async def _find_one(self, *criteria) -> UserRecord | None:
        result = await self.db.execute(select(User).where(*criteria))
        row = result.scalar_one_or_none()
        return _to_user(row) if row else None

    async def find_guest_by_device_id(self, device_id: str) -> UserRecord | None:
        return await self._bounded(
            "users.find_guest_by_device_id",
            self._find_one(User.device_id == device_id, User.is_guest.is_(True)),
        )

    async def find_by_guest_token(self, guest_token: GuestToken) -> UserRecord | None:
        return await self._bounded(
            "users.find_by_guest_token",
            self._find_one(User.guest_token == guest_token, User.is_guest.is_(True)),
        )

    async def find_guest_by_ip_hash(self, ip_hash: IpHash) -> UserRecord | None:
        return await self._bounded(
            "users.find_guest_by_ip_hash",
            self._find_one(User.ip_hash == ip_hash, User.is_guest.is_(True)),
        )

    async def find_by_id(self, user_id: UserId) -> UserRecord | None:
        return await self._bounded(
            "users.find_by_id", self._find_one(User.id == user_id),
        )

    async def insert_if_absent(self, user: UserRecord) -> UserRecord:
        return await self._bounded("users.insert_if_absent", self._insert(user))

    async def _insert(self, user: UserRecord) -> UserRecord:
        row = User(
            id=user.id,
            username=user.username,
            email=user.email,
            is_guest=user.is_guest,
            guest_token=user.guest_token,
            device_id=user.device_id,
            ip_hash=user.ip_hash,
            last_seen_ip_hash=user.ip_hash,
            last_seen_at=user.created_at,
            created_at=user.created_at,
        )
        self.db.add(row)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if _is_unique_violation(e):
                raise UniqueViolationError("User")
            raise
        return user

    async def record_sighting(
        self, user_id: UserId, ip_hash: IpHash | None, seen_at: datetime,
    ) -> None:
        await self._bounded(
            "users.record_sighting", self._touch(user_id, ip_hash, seen_at),
        )

    async def _touch(
        self, user_id: UserId, ip_hash: IpHash | None, seen_at: datetime,
    ) -> None:
        values: dict = {"last_seen_at": seen_at}
        if ip_hash is not None:
            values["last_seen_ip_hash"] = ip_hash
        await self.db.execute(
            update(User).where(User.id == user_id).values(**values),
        )
        await self.db.commit()

    async def link_guest_signals(
        self, user_id: UserId, device_id: str | None, ip_hash: IpHash | None,
    ) -> None:
        if device_id:
            await self._bounded(
                "users.link_device_id",
                self._fill_if_empty(user_id, User.device_id, device_id),
            )
        if ip_hash:
            await self._bounded(
                "users.link_ip_hash",
                self._fill_if_empty(user_id, User.ip_hash, ip_hash),
            )

    async def _fill_if_empty(self, user_id: UserId, column, value: str) -> None:
        stmt = (
            update(User)
            .where(User.id == user_id, User.is_guest.is_(True), column.is_(None))
            .values({column.key: value})
            .execution_options(synchronize_session=False)
        )
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if not _is_unique_violation(e):
                raise
            # Another guest already owns this key: leave both rows as they are
            logger.info(
                f"Guest signal {column.key} already linked elsewhere",
                extra={"user_id": str(user_id), "operation": "users.link_guest_signals"},
            )


class SqlStatsStore(_SqlStore):

    async def find_by_user_id(self, user_id: UserId) -> StatsRecord | None:
        return await self._bounded("user_stats.find_by_user_id", self._find(user_id))

    async def _find(self, user_id: UserId) -> StatsRecord | None:
        result = await self.db.execute(
            select(UserStats).where(UserStats.user_id == user_id),
        )
        row = result.scalar_one_or_none()
        return _to_stats(row) if row else None

    async def create_zeroed_stats(self, user_id: UserId) -> StatsRecord:
        return await self._bounded(
            "user_stats.create_zeroed_stats", self._create(user_id),
        )

    async def _create(self, user_id: UserId) -> StatsRecord:
        self.db.add(UserStats(user_id=user_id))
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if not _is_unique_violation(e):
                raise
            existing = await self._find(user_id)
            if existing is None:
                raise UniqueViolationError("UserStats")
            return existing
        return StatsRecord(user_id=user_id)


class SqlAttemptStore(_SqlStore):

    async def insert_final_if_absent(self, attempt: DailyAttempt) -> bool:
        return await self._bounded(
            "daily_attempts.insert_final_if_absent", self._insert_final(attempt),
        )

    async def _insert_final(self, attempt: DailyAttempt) -> bool:
        self.db.add(DailyAttemptRow(
            id=attempt.id,
            user_id=attempt.user_id,
            puzzle_id=attempt.puzzle_id,
            attempted_answer=attempt.attempted_answer,
            is_correct=attempt.is_correct,
            abandoned=attempt.abandoned,
            attempt_number=attempt.attempt_number,
            max_attempts=attempt.max_attempts,
            time_spent_seconds=attempt.time_spent_seconds,
            day_key=attempt.day_key,
            final_day_key=attempt.day_key,
            attempted_at=attempt.attempted_at,
            completed_at=attempt.completed_at,
        ))
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if _is_unique_violation(e, FINAL_PER_DAY_CONSTRAINT, "final_day_key"):
                return False
            raise
        return True

    async def insert_in_progress_if_open(self, attempt: DailyAttempt) -> bool:
        return await self._bounded(
            "daily_attempts.insert_in_progress_if_open",
            self._insert_in_progress(attempt),
        )

    async def _insert_in_progress(self, attempt: DailyAttempt) -> bool:
        columns = {
            "id": (attempt.id, UUID(as_uuid=True)),
            "user_id": (attempt.user_id, UUID(as_uuid=True)),
            "puzzle_id": (attempt.puzzle_id, String(64)),
            "attempted_answer": (attempt.attempted_answer, Text()),
            "is_correct": (False, Boolean()),
            "abandoned": (False, Boolean()),
            "attempt_number": (attempt.attempt_number, Integer()),
            "max_attempts": (attempt.max_attempts, Integer()),
            "time_spent_seconds": (attempt.time_spent_seconds, Integer()),
            "day_key": (attempt.day_key, Date()),
            "attempted_at": (attempt.attempted_at, DateTime(timezone=True)),
        }
        day_closed = exists().where(
            DailyAttemptRow.user_id == attempt.user_id,
            DailyAttemptRow.final_day_key == attempt.day_key,
        )
        source = select(
            *(literal(value, type_).label(name) for name, (value, type_) in columns.items()),
        ).where(~day_closed)
        try:
            result = await self.db.execute(
                insert(DailyAttemptRow).from_select(list(columns), source),
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        return result.rowcount == 1

    async def find_final(self, user_id: UserId, day_key: date) -> DailyAttempt | None:
        return await self._bounded(
            "daily_attempts.find_final", self._find_final(user_id, day_key),
        )

    async def _find_final(self, user_id: UserId, day_key: date) -> DailyAttempt | None:
        result = await self.db.execute(
            select(DailyAttemptRow).where(
                DailyAttemptRow.user_id == user_id,
                DailyAttemptRow.final_day_key == day_key,
            ),
        )
        row = result.scalar_one_or_none()
        return _to_attempt(row) if row else None
