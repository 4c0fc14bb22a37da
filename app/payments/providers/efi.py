"""
Efí (instant-payment gateway) webhook adapter.

Efí also charges store owners for their platform subscription. Those
charges are correlated by the txid stored on the owner invoice: through a
transaction linked to the invoice when one exists, otherwise directly on
the invoice.
"""

from __future__ import annotations

from django.db.models import Q

from payments.providers.base import Correlation
from payments.providers.pix import PixWebhookAdapter
from payments.state_machines import PaymentProvider


class EfiWebhookAdapter(PixWebhookAdapter):
    provider = PaymentProvider.EFI
    payment_label = "Efí"
    settles_invoices_by_charge_id = True

    def fallback_filter(self, correlation: Correlation) -> Q | None:
        return Q(invoice__gateway_charge_id=correlation.fallback)
