"""Memory Stores: in-process implementations of the core store protocols.

Invariants:
    - Each method yields to the event loop once BEFORE touching state, then checks
      and writes with no further await: check-and-insert is atomic under asyncio
    - Unique keys mirror the SQL schema: guest_token, device_id, ip_hash for users;
      user_id for stats; (user_id, final_day_key) for attempts
    - Records are frozen dataclasses, so handing them out never leaks mutable state

Design Decisions:
    - The yield point models a network round trip: concurrent callers genuinely
      interleave their lookups before racing on the insert (ADR: race tests stay honest)
    - Single-process only: multi-instance deployments use sql_stores.py
"""

import asyncio
from dataclasses import replace
from datetime import date, datetime

from rebuzzle.core.domain_types import (
    DailyAttempt, GuestToken, IpHash, StatsRecord, UserId, UserRecord,
)
from rebuzzle.core.errors import UniqueViolationError


class MemoryUserStore:

    def __init__(self):
        self.users: dict[UserId, UserRecord] = {}
        self.sightings: dict[UserId, tuple[IpHash | None, datetime]] = {}

    def _find(self, predicate) -> UserRecord | None:
        return next((u for u in self.users.values() if predicate(u)), None)

    async def find_guest_by_device_id(self, device_id: str) -> UserRecord | None:
        await asyncio.sleep(0)
        return self._find(lambda u: u.is_guest and u.device_id == device_id)

    async def find_by_guest_token(self, guest_token: GuestToken) -> UserRecord | None:
        await asyncio.sleep(0)
        return self._find(lambda u: u.is_guest and u.guest_token == guest_token)

    async def find_guest_by_ip_hash(self, ip_hash: IpHash) -> UserRecord | None:
        await asyncio.sleep(0)
        return self._find(lambda u: u.is_guest and u.ip_hash == ip_hash)

    async def find_by_id(self, user_id: UserId) -> UserRecord | None:
        await asyncio.sleep(0)
        return self.users.get(user_id)

    async def insert_if_absent(self, user: UserRecord) -> UserRecord:
        await asyncio.sleep(0)
        for existing in self.users.values():
            if (
                existing.id == user.id
                or (user.guest_token and existing.guest_token == user.guest_token)
                or (user.device_id and existing.device_id == user.device_id)
                or (user.ip_hash and existing.ip_hash == user.ip_hash)
            ):
                raise UniqueViolationError("User")
        self.users[user.id] = user
        return user

    async def record_sighting(
        self, user_id: UserId, ip_hash: IpHash | None, seen_at: datetime,
    ) -> None:
        await asyncio.sleep(0)
        if user_id in self.users:
            self.sightings[user_id] = (ip_hash, seen_at)

    async def link_guest_signals(
        self, user_id: UserId, device_id: str | None, ip_hash: IpHash | None,
    ) -> None:
        await asyncio.sleep(0)
        user = self.users.get(user_id)
        if user is None or not user.is_guest:
            return
        others = [u for u in self.users.values() if u.id != user_id]
        if device_id and user.device_id is None and all(
            u.device_id != device_id for u in others
        ):
            user = replace(user, device_id=device_id)
        if ip_hash and user.ip_hash is None and all(
            u.ip_hash != ip_hash for u in others
        ):
            user = replace(user, ip_hash=ip_hash)
        self.users[user_id] = user


class MemoryStatsStore:

    def __init__(self):
        self.stats: dict[UserId, StatsRecord] = {}

    async def create_zeroed_stats(self, user_id: UserId) -> StatsRecord:
        await asyncio.sleep(0)
        return self.stats.setdefault(user_id, StatsRecord(user_id=user_id))

    async def find_by_user_id(self, user_id: UserId) -> StatsRecord | None:
        await asyncio.sleep(0)
        return self.stats.get(user_id)


class MemoryAttemptStore:

    def __init__(self):
        self.attempts: list[DailyAttempt] = []
        self._finals: dict[tuple[UserId, date], DailyAttempt] = {}

    async def insert_final_if_absent(self, attempt: DailyAttempt) -> bool:
        await asyncio.sleep(0)
        key = (attempt.user_id, attempt.day_key)
        if key in self._finals:
            return False
        self._finals[key] = attempt
        self.attempts.append(attempt)
        return True

    async def insert_in_progress_if_open(self, attempt: DailyAttempt) -> bool:
        await asyncio.sleep(0)
        if (attempt.user_id, attempt.day_key) in self._finals:
            return False
        self.attempts.append(replace(attempt, is_correct=False, abandoned=False))
        return True

    async def find_final(self, user_id: UserId, day_key: date) -> DailyAttempt | None:
        await asyncio.sleep(0)
        return self._finals.get((user_id, day_key))
