"""Error Hierarchy — typed, categorized exceptions for every API failure mode.

Invariants:
    - Each error names a machine code, a category and a severity next to its HTTP status
    - 4xx errors describe the caller's request; 5xx errors are logged at CRITICAL/ERROR
    - to_response() produces the response envelope: {success: false, message, code, ...}
    - Messages are safe to return to clients (no SQL, paths or stack traces)

Design Decisions:
    - Single hierarchy with ApiError base: one global handler renders all of them
      instead of a try/catch/respond block in every route
    - ErrorContext stays a plain dataclass; the handler decides what gets logged
    - Optional errors/data/details payloads carried on the exception so routes can
      raise structured failures (field errors, missing ids, accepted auth methods)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Drives the log level the global handler picks."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Logged as error_category next to the code."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RATE_LIMIT = "rate_limit"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """When the error happened, plus the retry hint rate limiting attaches."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    retry_after_seconds: int | None = None


class ApiError(Exception):
    """Base exception for all API errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        errors: list[dict] | None = None,
        data: Any = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.errors = errors
        self.data = data
        self.details = details

    def to_response(self) -> dict:
        """Convert to the standard error envelope."""
        body: dict[str, Any] = {
            "success": False,
            "message": self.message,
            "code": self.code,
        }
        if self.errors is not None:
            body["errors"] = self.errors
        if self.data is not None:
            body["data"] = self.data
        if self.details is not None:
            body["details"] = self.details
        if self.context.retry_after_seconds is not None:
            body["retryAfter"] = self.context.retry_after_seconds
        return body


# ─── Domain Errors (400-level) ──────────────────────────────────

class ValidationFailedError(ApiError):
    """Request payload failed validation."""
    def __init__(
        self,
        errors: list[dict],
        message: str = "Validation failed",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400, errors=errors,
        )


class BusinessRuleError(ApiError):
    """Request is well-formed but violates a domain rule."""
    def __init__(
        self,
        message: str,
        code: str = "BAD_REQUEST",
        context: ErrorContext | None = None,
        data: Any = None,
    ):
        super().__init__(
            message, code, ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 400, data=data,
        )


class ResourceNotFoundError(ApiError):
    """Row looked up by id (or unique name) is absent."""
    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        data: Any = None,
    ):
        super().__init__(
            message, "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404, data=data,
        )


class ConflictError(ApiError):
    """Uniqueness constraint would be violated."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class AuthenticationError(ApiError):
    """Caller is not authenticated."""
    def __init__(
        self,
        message: str,
        code: str = "UNAUTHORIZED",
        details: dict | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401, details=details,
        )


class ForbiddenError(ApiError):
    """Credentials were presented but rejected."""
    def __init__(
        self,
        message: str,
        code: str = "FORBIDDEN",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class RateLimitedError(ApiError):
    """Too many requests from one client within the window."""
    def __init__(self, retry_after_seconds: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.retry_after_seconds = retry_after_seconds
        super().__init__(
            "Too many requests. Please try again later.",
            "RATE_LIMITED", ErrorCategory.RATE_LIMIT,
            ErrorSeverity.WARNING, ctx, 429,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(ApiError):
    """Driver or ORM failure, reported as 503."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class ExternalServiceError(ApiError):
    """Outbound call to the face-recognition service failed."""
    def __init__(
        self,
        message: str,
        service: str,
        upstream_status: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{service} error: {message}",
            "EXTERNAL_SERVICE_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, context, 502,
        )
        self.service = service
        self.upstream_status = upstream_status


class VectorStoreError(ApiError):
    """Vector database operation failed."""
    def __init__(
        self,
        message: str,
        http_status: int = 500,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VECTOR_STORE_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, http_status,
        )
