"""
Payment domain models.

This module contains all payment-related models:
- PaymentTransaction: One payment attempt, mutated by webhook reconciliation
- WebhookEvent: One row per inbound provider delivery
- GatewaySecret: Per-provider credentials (API tokens, webhook tokens)
"""

from payments.models.gateway_secret import GatewaySecret
from payments.models.transaction import PaymentTransaction
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "GatewaySecret",
    "PaymentTransaction",
    "WebhookEvent",
]
