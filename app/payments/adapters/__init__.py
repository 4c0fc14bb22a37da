"""
Payment adapters for external provider APIs.

All outbound calls to payment providers go through these adapters to get
consistent error handling, timeouts and logging.

Usage:
    from payments.adapters import MercadoPagoAdapter, StripeAdapter

    payment = MercadoPagoAdapter.fetch_payment(payment_id)
    StripeAdapter.verify_webhook_signature(request.body, signature)
"""

from payments.adapters.mercadopago_adapter import MercadoPagoAdapter
from payments.adapters.stripe_adapter import StripeAdapter

__all__ = [
    "MercadoPagoAdapter",
    "StripeAdapter",
]
