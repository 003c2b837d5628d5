"""Domain Types: rich types that replace bare primitives across the codebase.

Invariants:
    - UserId, PuzzleId, AttemptId wrap UUIDs / strings: never use bare values in domain logic
    - Records are frozen: stores hand out snapshots, never live ORM rows
    - DailyAttempt.final_day_key is set iff the attempt is final (correct or abandoned)
    - All valid states encoded as Enums: no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (ADR: FastAPI responses)
    - Frozen dataclasses for records: core stays independent of SQLAlchemy models
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import NewType
from uuid import UUID, uuid4


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)
AttemptId = NewType("AttemptId", UUID)
PuzzleId = NewType("PuzzleId", str)
IpHash = NewType("IpHash", str)            # hex SHA-256, never a raw IP
GuestToken = NewType("GuestToken", str)


# ─── Enums ───────────────────────────────────────────────────────

class IdentifiedBy(str, Enum):
    """Which identity signal resolved the caller. Order = resolution priority."""
    DEVICE_ID = "deviceId"
    GUEST_TOKEN = "cookie"
    IP_HASH = "ip"
    LOCAL_FALLBACK = "localStorage"
    NONE = "none"


class MatchClassification(str, Enum):
    """Outcome of comparing a guess against the canonical answer."""
    EXACT = "exact"
    NORMALIZED = "normalized"
    FUZZY_AI = "fuzzy-ai"
    REJECT = "reject"


class AttemptState(str, Enum):
    """Per (user, day_key) lifecycle. FINAL_* states accept no transitions."""
    NO_ATTEMPT = "no-attempt"
    IN_PROGRESS = "in-progress"
    FINAL_CORRECT = "final:correct"
    FINAL_ABANDONED = "final:abandoned"


class AttemptRefusal(str, Enum):
    """Structured reasons AttemptGate refuses a write."""
    ALREADY_ATTEMPTED_TODAY = "already-attempted-today"
    ATTEMPTS_EXHAUSTED = "attempts-exhausted"


# ─── Records ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class UserRecord:
    id: UserId
    is_guest: bool
    username: str
    guest_token: GuestToken | None = None
    device_id: str | None = None
    ip_hash: IpHash | None = None
    email: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class StatsRecord:
    user_id: UserId
    points: int = 0
    streak: int = 0
    max_streak: int = 0
    total_games: int = 0
    wins: int = 0
    level: int = 1
    streak_freezes: int = 1


@dataclass(frozen=True)
class DailyAttempt:
    user_id: UserId
    puzzle_id: PuzzleId
    attempted_answer: str
    is_correct: bool
    abandoned: bool
    attempt_number: int
    max_attempts: int
    time_spent_seconds: int
    attempted_at: datetime
    day_key: date
    completed_at: datetime | None = None
    id: AttemptId = field(default_factory=lambda: AttemptId(uuid4()))

    @property
    def is_final(self) -> bool:
        return self.is_correct or self.abandoned

    @property
    def final_day_key(self) -> date | None:
        return self.day_key if self.is_final else None

    @property
    def state(self) -> AttemptState:
        if self.is_correct:
            return AttemptState.FINAL_CORRECT
        if self.abandoned:
            return AttemptState.FINAL_ABANDONED
        return AttemptState.IN_PROGRESS


# ─── Signals & Results ───────────────────────────────────────────

@dataclass(frozen=True)
class IdentitySignals:
    """Per-request evidence. Only guest_token is ever persisted (on the User)."""
    ip_address: str
    device_id: str | None = None
    guest_token: str | None = None
    local_fallback_id: str | None = None


@dataclass(frozen=True)
class ResolutionResult:
    found: bool
    identified_by: IdentifiedBy
    user_id: UserId | None = None
    user: UserRecord | None = None


@dataclass(frozen=True)
class GuestCredentials:
    """Cookie contract handed to the HTTP layer."""
    guest_token: GuestToken
    session_token: str
    guest_token_max_age: int
    session_max_age: int


@dataclass(frozen=True)
class ProvisionResult:
    user: UserRecord
    credentials: GuestCredentials
    created: bool


@dataclass(frozen=True)
class AttemptData:
    """Caller-supplied attempt payload (user and puzzle passed separately)."""
    attempted_answer: str
    is_correct: bool = False
    abandoned: bool = False
    attempt_number: int = 1
    max_attempts: int = 3
    time_spent_seconds: int = 0


@dataclass(frozen=True)
class AttemptOutcome:
    success: bool
    attempt: DailyAttempt | None = None
    reason: AttemptRefusal | None = None


@dataclass(frozen=True)
class TodayStatus:
    has_final_attempt: bool
    was_successful: bool = False
    puzzle_id: PuzzleId | None = None


@dataclass(frozen=True)
class SemanticJudgment:
    equivalent: bool
    confidence: float
    reasoning: str = ""


@dataclass(frozen=True)
class MatchResult:
    guess: str
    answer: str
    normalized_guess: str
    normalized_answer: str
    similarity: float
    confidence: float
    classification: MatchClassification
    reasoning: str

    @property
    def is_correct(self) -> bool:
        return self.classification is not MatchClassification.REJECT
