"""Error Hierarchy — typed, categorized exceptions for all cardsync failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Only NetworkFailure is retryable; the Resolution Pipeline is the only retrier
    - to_response() produces the REST envelope used by the share gateway
    - No transport details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with CardSyncError base: the gateway handler catches all of it
    - Cache misses are not errors: CacheManager.get returns None and callers fall through
    - ErrorContext as dataclass: rich observability without coupling to logging framework
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
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHORIZATION = "authorization"
    NETWORK = "network"
    LOCAL_STORE = "local_store"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    card_id: str | None = None
    operation: str | None = None
    attempt: int | None = None
    status_code: int | None = None
    debug_info: dict[str, Any] | None = None


class CardSyncError(Exception):
    """Base exception for all cardsync errors."""

    retryable = False

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
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "card_id": self.context.card_id,
                    "operation": self.context.operation,
                    "attempt": self.context.attempt,
                },
            }
        }


# ─── Caller Errors (400-level) ──────────────────────────────────

class ValidationFailure(CardSyncError):
    """The service rejected the card payload."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_FAILURE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


class NotFound(CardSyncError):
    """The service does not know the requested card (or it is not public)."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )
        self.resource_id = resource_id


class AuthFailure(CardSyncError):
    """Session token missing, expired, or lacking permission for the card."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "AUTH_FAILURE", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 401,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class NetworkFailure(CardSyncError):
    """Transport failure or transient upstream error — safe to retry."""

    retryable = True

    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "NETWORK_FAILURE", ErrorCategory.NETWORK,
            ErrorSeverity.ERROR, context, 503,
        )


class LocalStoreError(CardSyncError):
    """Durable local store operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Local store {operation} failed: {message}",
            "LOCAL_STORE_ERROR", ErrorCategory.LOCAL_STORE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
