"""
Base exception classes for application-wide error handling.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures (HTTP 400)
    ├── AuthenticationError - Caller could not be authenticated (HTTP 401)
    └── ExternalServiceError - Third-party service failures (HTTP 502/500)

Every class carries an http_status so views can turn a caught exception
into a response without a lookup table.

Usage:
    from core.exceptions import ValidationError

    raise ValidationError(
        "Missing payment id",
        error_code="INVALID_WEBHOOK_PAYLOAD",
        details={"provider": "asaas"},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (identifiers, upstream errors)
        http_status: Status code a view should answer with
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for an API response.

        Example:
            {
                "error": "Missing payment.id",
                "error_code": "INVALID_WEBHOOK_PAYLOAD",
                "details": {"provider": "asaas"}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for malformed request bodies and missing required fields.
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class AuthenticationError(BaseApplicationError):
    """Raised when a caller's token or signature does not check out."""

    default_error_code: str = "AUTHENTICATION_FAILED"
    http_status: int = 401


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Provider API failures and timeouts
    - Missing provider credentials
    - Unexpected provider responses

    Note:
        Log the original error for debugging but don't expose internal
        details to callers.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = 500
