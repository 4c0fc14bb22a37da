"""
Provider webhook adapters.

One adapter per payment provider, selected by provider tag. The
reconciliation engine is the same for all of them.

Usage:
    from payments.providers import get_adapter

    adapter = get_adapter("asaas")
    adapter.map_status("RECEIVED")  # "paid"
"""

from __future__ import annotations

from payments.providers.asaas import AsaasWebhookAdapter
from payments.providers.base import (
    Correlation,
    ParsedDelivery,
    ProviderWebhookAdapter,
)
from payments.providers.efi import EfiWebhookAdapter
from payments.providers.mercadopago import MercadoPagoWebhookAdapter
from payments.providers.pagseguro import PagSeguroWebhookAdapter
from payments.providers.sicredi import SicrediWebhookAdapter
from payments.providers.stripe import StripeWebhookAdapter

ADAPTERS: dict[str, ProviderWebhookAdapter] = {
    adapter.provider: adapter
    for adapter in (
        AsaasWebhookAdapter(),
        EfiWebhookAdapter(),
        MercadoPagoWebhookAdapter(),
        PagSeguroWebhookAdapter(),
        SicrediWebhookAdapter(),
        StripeWebhookAdapter(),
    )
}


def get_adapter(provider: str) -> ProviderWebhookAdapter | None:
    """Adapter for a provider tag, or None for unknown providers."""
    return ADAPTERS.get(provider)


__all__ = [
    "ADAPTERS",
    "AsaasWebhookAdapter",
    "Correlation",
    "EfiWebhookAdapter",
    "MercadoPagoWebhookAdapter",
    "PagSeguroWebhookAdapter",
    "ParsedDelivery",
    "ProviderWebhookAdapter",
    "SicrediWebhookAdapter",
    "StripeWebhookAdapter",
    "get_adapter",
]
