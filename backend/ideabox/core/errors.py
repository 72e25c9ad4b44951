"""Error Hierarchy — typed, categorized exceptions for all IdeaBox failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope used by every error handler
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with IdeaBoxError base: one FastAPI handler catches all
    - ErrorContext as dataclass: observability fields without coupling to logging
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
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Context attached to an error for logs and API responses."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    post_id: int | None = None
    provider_id: int | None = None
    repository: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class IdeaBoxError(Exception):
    """Base exception for all IdeaBox errors."""

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
                    "post_id": self.context.post_id,
                    "provider_id": self.context.provider_id,
                    "repository": self.context.repository,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ResourceNotFoundError(IdeaBoxError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type


class MergeConflictError(IdeaBoxError):
    """Merge or unmerge requested on posts in an incompatible state."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "MERGE_CONFLICT", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )


class IntegrationConflictError(IdeaBoxError):
    """Integration change blocked by existing state (links, duplicates)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INTEGRATION_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class IntegrationNotAuthenticatedError(IdeaBoxError):
    """Integration call attempted without a stored access token."""
    def __init__(self, integration: str, context: ErrorContext | None = None):
        super().__init__(
            f"{integration} integration not authenticated",
            "INTEGRATION_NOT_AUTHENTICATED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400,
        )


class AuthenticationRequiredError(IdeaBoxError):
    """Request carries no (known) acting user."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authentication required",
            "AUTHENTICATION_REQUIRED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class PermissionDeniedError(IdeaBoxError):
    """Acting user lacks the role required by the route."""
    def __init__(self, message: str = "Administrator role required", context: ErrorContext | None = None):
        super().__init__(
            message, "PERMISSION_DENIED", ErrorCategory.PERMISSION,
            ErrorSeverity.WARNING, context, 403,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class IntegrationError(IdeaBoxError):
    """External integration call failed (e.g. GitHub returned nothing usable)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INTEGRATION_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )


class DatabaseError(IdeaBoxError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class AIServiceError(IdeaBoxError):
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
            f"AI service error ({api_error_type}): {message}",
            "AI_SERVICE_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.api_error_type = api_error_type
