"""
State enums for payment models.

This module defines the enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

PaymentTransaction states (shared with Order.payment_status):
    pending → paid → refunded
    pending → failed | canceled | expired
    failed | canceled | expired → pending (provider restored the charge)
    failed | canceled | expired → paid (late confirmation)
    pending → refunded (refund seen before the confirmation)

WebhookEvent outcomes:
    received → reconciled | duplicate | ignored | not_found | rejected | failed
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    Internal payment status vocabulary.

    Every provider status is mapped onto one of these values. Unknown
    provider statuses map to PENDING, the safest non-terminal value.

    Terminal state: REFUNDED
    """

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    CANCELED = "canceled", "Canceled"
    REFUNDED = "refunded", "Refunded"
    EXPIRED = "expired", "Expired"


class PaymentProvider(models.TextChoices):
    """Payment providers that deliver webhooks to this service."""

    ASAAS = "asaas", "Asaas"
    EFI = "efi", "Efí"
    MERCADOPAGO = "mercadopago", "Mercado Pago"
    PAGSEGURO = "pagseguro", "PagSeguro"
    SICREDI = "sicredi", "Sicredi"
    STRIPE = "stripe", "Stripe"


class PaymentMethod(models.TextChoices):
    """How the buyer chose to pay."""

    PIX = "pix", "PIX"
    CARD = "card", "Card"
    BOLETO = "boleto", "Boleto"


class WebhookOutcome(models.TextChoices):
    """
    Result of handling one inbound webhook delivery.

    Only RECONCILED, DUPLICATE and IGNORED count as success.
    """

    RECEIVED = "received", "Received"
    RECONCILED = "reconciled", "Reconciled"
    DUPLICATE = "duplicate", "Duplicate"
    IGNORED = "ignored", "Ignored"
    NOT_FOUND = "not_found", "Transaction Not Found"
    REJECTED = "rejected", "Rejected"
    FAILED = "failed", "Failed"


SUCCESSFUL_OUTCOMES = frozenset(
    {WebhookOutcome.RECONCILED, WebhookOutcome.DUPLICATE, WebhookOutcome.IGNORED}
)


__all__ = [
    "PaymentMethod",
    "PaymentProvider",
    "PaymentStatus",
    "SUCCESSFUL_OUTCOMES",
    "WebhookOutcome",
]
