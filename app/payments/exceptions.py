"""
Payment-specific exceptions for webhook reconciliation.

Each exception carries the HTTP status the webhook view answers with, so
provider adapters and the reconciliation engine can raise them and the
view only has to translate.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── WebhookPayloadError - Body missing a required correlation field (400)
    ├── WebhookAuthenticationError - Bad signature or token (401)
    ├── AmbiguousTransactionError - More than one transaction matches (500)
    └── PaymentProcessingError - Downstream dependency failures (500)
        ├── ProviderLookupError - Provider payment-detail API failure
        └── StripeError - Base for Stripe SDK errors
            └── StripeInvalidRequestError - Invalid request params

Usage:
    from payments.exceptions import WebhookPayloadError

    payment_id = payload.get("payment", {}).get("id")
    if not payment_id:
        raise WebhookPayloadError(
            "Missing payment.id",
            details={"provider": "asaas"},
        )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    AuthenticationError,
    BaseApplicationError,
    ExternalServiceError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Example:
        try:
            ReconciliationService.run(adapter, webhook_event)
        except PaymentError as e:
            logger.error("Webhook handling failed", extra=e.to_dict())
            return JsonResponse(e.to_dict(), status=e.http_status)
    """

    default_error_code: str = "PAYMENT_ERROR"


class WebhookPayloadError(PaymentError, ValidationError):
    """
    Raised when a webhook body lacks the fields needed to correlate it.

    No mutation is attempted.
    """

    default_error_code: str = "INVALID_WEBHOOK_PAYLOAD"
    http_status: int = 400


class WebhookAuthenticationError(PaymentError, AuthenticationError):
    """Raised when a webhook signature or shared token does not verify."""

    default_error_code: str = "WEBHOOK_AUTHENTICATION_FAILED"
    http_status: int = 401


class AmbiguousTransactionError(PaymentError):
    """
    Raised when a correlation value matches more than one transaction.

    Identifiers are expected to be unique, so this is an internal error.
    """

    default_error_code: str = "AMBIGUOUS_TRANSACTION"
    http_status: int = 500


class PaymentProcessingError(PaymentError):
    """Raised when a dependency needed to reconcile a delivery fails."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"
    http_status: int = 500


class ProviderLookupError(PaymentProcessingError, ExternalServiceError):
    """
    Raised when a provider's payment-detail API cannot be used.

    Covers missing credentials, timeouts, non-2xx responses and an open
    circuit breaker. The provider redelivers the webhook later.

    Example:
        except requests.Timeout as e:
            raise ProviderLookupError(
                "Mercado Pago lookup timed out",
                details={"payment_id": payment_id},
            ) from e
    """

    default_error_code: str = "PROVIDER_LOOKUP_FAILED"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for Stripe SDK errors.

    Attributes:
        stripe_code: Stripe's internal error code
    """

    default_error_code: str = "STRIPE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Raised for webhook payloads the SDK cannot parse.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
