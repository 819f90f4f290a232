"""
Exception hierarchy for the ERP sync core.

Every error carries an error code, an HTTP status for the function endpoints,
an optional cause and free-form context. Errors log themselves when they are
constructed, and pick up the correlation id of the sync run in progress.

Transport errors additionally carry a ``retryable`` flag that is decided where
the error is created, so retry policy never has to inspect message text.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

_thread_local = threading.local()


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONFIGURATION_ERROR = "1003"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"

    # Auth errors (4xxx)
    AUTH_NOT_CONFIGURED = "4010"
    AUTHORIZATION_FAILED = "4011"
    REFRESH_FAILED = "4012"
    INVALID_SIGNATURE = "4013"

    # External service errors (5xxx)
    EXTERNAL_API_ERROR = "5002"
    RATE_LIMITED = "5005"
    UNREACHABLE = "5006"
    SERVER_ERROR = "5007"
    CLIENT_REQUEST_ERROR = "5008"
    MALFORMED_RESPONSE = "5009"


class BaseError(Exception):
    """Base exception with context, error codes, logging, and error chaining."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Initialize base error with rich context.

        Args:
            message: Human-readable error message
            error_code: Standardized error code from ErrorCode enum
            status_code: HTTP status code for API responses
            cause: Original exception that caused this error
            **context: Additional context information
        """
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_id = str(uuid.uuid4())
        self.context = context

        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        self.context["error_id"] = self.error_id

        if cause:
            self.context["cause"] = {
                "type": type(cause).__name__,
                "message": str(cause),
                "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
            }

        self._log_error()

        super().__init__(message)

    def _log_error(self) -> None:
        """Log error with appropriate level based on status code."""
        # Imported here: the logger module imports the correlation helpers below
        from .utils.logger import get_logger

        logger = get_logger()

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "context": {k: v for k, v in self.context.items() if k not in ["cause", "traceback"]},
        }

        if self.status_code >= 500:
            logger.error(f"Error {self.error_code.value}: {self.message}", extra=log_data)
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code.value}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code.value}: {self.message}", extra=log_data)

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """
        Convert to dict for HTTP responses.

        Args:
            include_cause: Include cause type and message (useful for debugging)

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        result: Dict[str, Any] = {
            "error": {
                "id": self.error_id,
                "code": self.error_code.value,
                "message": self.message,
                "timestamp": self.timestamp,
                "context": {
                    k: v
                    for k, v in self.context.items()
                    if k not in ["cause", "error_id", "correlation_id"]
                },
            }
        }

        if "correlation_id" in self.context:
            result["error"]["correlation_id"] = self.context["correlation_id"]

        if include_cause and "cause" in self.context:
            result["error"]["cause"] = {
                "type": self.context["cause"]["type"],
                "message": self.context["cause"]["message"],
            }

        return result

    @property
    def error_chain(self) -> List[Exception]:
        """Get the full chain of errors."""
        chain: List[Exception] = [self]
        current = self.cause
        while current:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


# Layer-specific base exceptions
class RepositoryError(BaseError):
    """Repository layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context,
    ):
        super().__init__(message, error_code, status_code, cause, **context)


class ServiceError(BaseError):
    """Service layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        if operation:
            context["operation"] = operation
        super().__init__(message, error_code, 500, cause, **context)


class ValidationError(BaseError):
    """Validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class ExternalServiceError(BaseError):
    """External service integration errors."""

    def __init__(
        self,
        message: str,
        service_name: str,
        error_code: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
        status_code: int = 502,
        cause: Optional[Exception] = None,
        **context,
    ):
        context["service_name"] = service_name
        super().__init__(message, error_code, status_code, cause, **context)


# ==================== AUTH EXCEPTIONS ====================


class AuthNotConfiguredError(BaseError):
    """No active credential on file; an operator must authorize the integration."""

    def __init__(self, message: str = "Integration not configured. Authorize first.", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.AUTH_NOT_CONFIGURED, status_code=401, **kwargs
        )


class AuthorizationFailedError(BaseError):
    """The authorization-code exchange was rejected or could not be completed."""

    def __init__(self, message: str = "Authorization code exchange failed", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.AUTHORIZATION_FAILED, status_code=502, **kwargs
        )


class RefreshFailedError(BaseError):
    """The refresh-token exchange failed; stored credential state is unchanged."""

    def __init__(self, message: str = "Token refresh failed", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.REFRESH_FAILED, status_code=502, **kwargs
        )


class InvalidSignatureError(BaseError):
    """Webhook payload signature is missing or does not match."""

    def __init__(self, message: str = "Invalid webhook signature", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.INVALID_SIGNATURE, status_code=401, **kwargs
        )


# ==================== TRANSPORT EXCEPTIONS ====================


class TransportError(BaseError):
    """
    Failure of one outbound HTTP exchange.

    ``retryable`` is fixed by the subclass (or the caller creating the error)
    and is the only input the transport's retry policy looks at.
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
        status_code: int = 502,
        http_status: Optional[int] = None,
        retryable: Optional[bool] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        if retryable is not None:
            self.retryable = retryable
        self.http_status = http_status
        if http_status is not None:
            context["http_status"] = http_status
        context["retryable"] = self.retryable
        super().__init__(message, error_code, status_code, cause, **context)


class RateLimitedError(TransportError):
    """HTTP 429 from the API, or the local daily request budget is spent."""

    retryable = True

    def __init__(self, message: str = "Rate limit exceeded", **kwargs):
        kwargs.setdefault("http_status", 429)
        super().__init__(message, error_code=ErrorCode.RATE_LIMITED, status_code=503, **kwargs)


class UnreachableError(TransportError):
    """Connection refused, DNS failure or timeout."""

    retryable = True

    def __init__(self, message: str = "External API unreachable", **kwargs):
        super().__init__(message, error_code=ErrorCode.UNREACHABLE, status_code=503, **kwargs)


class ServerError(TransportError):
    """5xx answer from the API."""

    retryable = True

    def __init__(self, status: int, message: Optional[str] = None, **kwargs):
        self.status = status
        super().__init__(
            message or f"External API server error {status}",
            error_code=ErrorCode.SERVER_ERROR,
            status_code=502,
            http_status=status,
            **kwargs,
        )


class ClientRequestError(TransportError):
    """Non-retryable 4xx answer: the request itself is wrong."""

    retryable = False

    def __init__(self, status: int, message: Optional[str] = None, **kwargs):
        self.status = status
        super().__init__(
            message or f"External API rejected request with {status}",
            error_code=ErrorCode.CLIENT_REQUEST_ERROR,
            status_code=502,
            http_status=status,
            **kwargs,
        )


class MalformedResponseError(ExternalServiceError):
    """Payload could not be parsed into the expected shape. Never retried."""

    def __init__(self, message: str = "Malformed response from external API", **kwargs):
        kwargs.setdefault("service_name", "erp_api")
        super().__init__(message, error_code=ErrorCode.MALFORMED_RESPONSE, **kwargs)


class PersistenceError(RepositoryError):
    """Local store failure; the enclosing reconciliation was rolled back."""

    def __init__(self, message: str = "Failed to persist synced record", **kwargs):
        super().__init__(message, error_code=ErrorCode.DATABASE_ERROR, status_code=500, **kwargs)


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current thread's correlation ID."""
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the current thread's correlation ID."""
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")
