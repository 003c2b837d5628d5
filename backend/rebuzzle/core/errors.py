"""Error Hierarchy: typed, categorized exceptions for identity, attempt and store failures.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - StoreTimeoutError is the only retryable error kind (retryable=True)
    - No raw IP address or internal detail is ever placed in a user-facing message

Design Decisions:
    - Single hierarchy with RebuzzleError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - Uniqueness violations are errors at the store boundary; services decide whether
      they become a retry (provisioning) or a structured refusal (attempt gate)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    puzzle_id: str | None = None
    operation: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class RebuzzleError(Exception):
    """Base exception for all Rebuzzle core errors."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "retryable": self.retryable,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "user_id": self.context.user_id,
                    "puzzle_id": self.context.puzzle_id,
                    "operation": self.context.operation,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class AttemptValidationError(RebuzzleError):
    """Attempt payload violates a structural rule (counts, durations)."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "ATTEMPT_VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class AuthenticationError(RebuzzleError):
    """Session credential missing, expired, or forged."""
    def __init__(self, message: str = "Authentication required", context: ErrorContext | None = None):
        super().__init__(
            message, "AUTHENTICATION_REQUIRED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class UniqueViolationError(RebuzzleError):
    """Atomic insert-if-absent lost: a row with the same unique key exists."""
    def __init__(self, entity: str, context: ErrorContext | None = None):
        super().__init__(
            f"{entity} already exists for this key",
            "UNIQUE_VIOLATION", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.entity = entity


# ─── Infrastructure Errors (500-level) ──────────────────────────

class IpHashSaltMissingError(RebuzzleError):
    """Production configuration without IP_HASH_SALT. Fatal, never downgraded."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "IP_HASH_SALT is required in production for IP hashing. "
            "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\"",
            "IP_HASH_SALT_MISSING", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )


class SessionSecretMissingError(RebuzzleError):
    """Production configuration still signing sessions with the default secret."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "SESSION_SECRET must be set to a private value in production. "
            "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\"",
            "SESSION_SECRET_MISSING", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )


class DatabaseError(RebuzzleError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class StoreTimeoutError(RebuzzleError):
    """Store call exceeded its time budget. The write was rolled back."""

    retryable = True

    def __init__(self, operation: str, timeout_seconds: float, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Store operation '{operation}' timed out after {timeout_seconds}s",
            "STORE_TIMEOUT", ErrorCategory.TIMEOUT,
            ErrorSeverity.ERROR, ctx, 503,
        )
        self.operation = operation


class AnthropicAPIError(RebuzzleError):
    """Anthropic API call failed."""
    def __init__(
        self,
        message: str,
        api_error_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Anthropic API error ({api_error_type}): {message}",
            "ANTHROPIC_API_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.api_error_type = api_error_type
