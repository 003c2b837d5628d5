"""Boundary Protocols: contracts between core and shell.

Invariants:
    - Core NEVER imports from shell: dependency arrows point inward only
    - Every write is an atomic insert-if-absent; no protocol offers read-then-write
    - insert_* raise UniqueViolationError (or return False) on conflict, never overwrite
    - Implementations raise StoreTimeoutError when the call exceeds its budget

Design Decisions:
    - Protocol over ABC: structural subtyping, one implementation per store technology
      (sql_stores.py for SQLAlchemy, memory_stores.py for in-process use)
    - Async in Protocol: boundary methods are async because implementations do IO,
      but core pure functions that USE these protocols are never async themselves
"""

from datetime import date, datetime
from typing import Protocol

from rebuzzle.core.domain_types import (
    DailyAttempt, GuestToken, IpHash, SemanticJudgment, StatsRecord,
    UserId, UserRecord,
)


class UserStore(Protocol):
    """Contract for user persistence: secondary-index lookups + atomic insert."""
    async def find_guest_by_device_id(self, device_id: str) -> UserRecord | None: ...
    async def find_by_guest_token(self, guest_token: GuestToken) -> UserRecord | None: ...
    async def find_guest_by_ip_hash(self, ip_hash: IpHash) -> UserRecord | None: ...
    async def find_by_id(self, user_id: UserId) -> UserRecord | None: ...
    async def insert_if_absent(self, user: UserRecord) -> UserRecord:
        """Insert or raise UniqueViolationError if token/device/ip_hash is taken."""
        ...
    async def record_sighting(
        self, user_id: UserId, ip_hash: IpHash | None, seen_at: datetime,
    ) -> None: ...
    async def link_guest_signals(
        self, user_id: UserId, device_id: str | None, ip_hash: IpHash | None,
    ) -> None:
        """Fill a guest's missing device_id / ip_hash. Never overwrites, never
        steals a key another user holds."""
        ...


class StatsStore(Protocol):
    """Contract for per-user stats persistence."""
    async def create_zeroed_stats(self, user_id: UserId) -> StatsRecord:
        """Insert zeroed stats, or return the existing row for user_id."""
        ...
    async def find_by_user_id(self, user_id: UserId) -> StatsRecord | None: ...


class AttemptStore(Protocol):
    """Contract for daily attempt persistence keyed by (user_id, day_key)."""
    async def insert_final_if_absent(self, attempt: DailyAttempt) -> bool:
        """Single conditional insert. False when a final row already exists."""
        ...
    async def insert_in_progress_if_open(self, attempt: DailyAttempt) -> bool:
        """Single conditional insert. False once the day is final."""
        ...
    async def find_final(self, user_id: UserId, day_key: date) -> DailyAttempt | None: ...


class SemanticEquivalenceService(Protocol):
    """Optional meaning-level judge consulted for borderline guesses."""
    async def judge(self, guess: str, answer: str) -> SemanticJudgment: ...
