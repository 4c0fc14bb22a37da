"""
Stripe adapter for webhook verification.

This service never calls the Stripe API: checkout is created elsewhere
and Stripe only reaches us through webhooks. The adapter verifies the
Stripe-Signature header before the payload is trusted.

Configuration (via settings):
- STRIPE_WEBHOOK_SECRET: Webhook signing secret (verification is skipped
  when empty)
- STRIPE_WEBHOOK_TOLERANCE_SECONDS: Accepted timestamp drift (default: 300)

Usage:
    from payments.adapters import StripeAdapter

    if StripeAdapter.is_signature_required():
        StripeAdapter.verify_webhook_signature(request.body, signature)
"""

from __future__ import annotations

import logging

import stripe
from django.conf import settings

from payments.exceptions import StripeInvalidRequestError, WebhookAuthenticationError


class StripeAdapter:
    """
    Adapter for Stripe webhook operations.

    All methods are class methods - no instance state is maintained.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @staticmethod
    def is_signature_required() -> bool:
        return bool(getattr(settings, "STRIPE_WEBHOOK_SECRET", ""))

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(cls, payload: bytes, signature: str | None) -> None:
        """
        Verify the Stripe-Signature header of a webhook delivery.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value

        Raises:
            WebhookAuthenticationError: Missing or invalid signature
            StripeInvalidRequestError: Payload is not valid UTF-8
        """
        if not signature:
            raise WebhookAuthenticationError(
                "Missing Stripe-Signature header",
                details={"provider": "stripe"},
            )

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StripeInvalidRequestError(
                "Webhook payload is not valid UTF-8",
                stripe_code="invalid_payload",
            ) from e

        try:
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
                getattr(settings, "STRIPE_WEBHOOK_TOLERANCE_SECONDS", 300),
            )
        except stripe.SignatureVerificationError as e:
            cls.get_logger().warning(
                "Stripe signature verification failed",
                extra={"error": str(e)},
            )
            raise WebhookAuthenticationError(
                "Invalid webhook signature",
                error_code="INVALID_STRIPE_SIGNATURE",
                details={"provider": "stripe"},
            ) from e
