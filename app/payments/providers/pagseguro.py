"""
PagSeguro (checkout PSP) webhook adapter.

Body shape:
    {"id": "ORDE_...", "charges": [{"id": "CHAR_...", "status": "PAID"}]}

Some notifications post the charge itself at the top level.
"""

from __future__ import annotations

from typing import Any

from payments.exceptions import WebhookPayloadError
from payments.providers.base import (
    Correlation,
    ParsedDelivery,
    ProviderWebhookAdapter,
    to_decimal,
)
from payments.state_machines import PaymentProvider, PaymentStatus


class PagSeguroWebhookAdapter(ProviderWebhookAdapter):
    provider = PaymentProvider.PAGSEGURO
    payment_label = "PagSeguro"

    status_map = {
        "PAID": PaymentStatus.PAID,
        "AUTHORIZED": PaymentStatus.PENDING,
        "IN_ANALYSIS": PaymentStatus.PENDING,
        "DECLINED": PaymentStatus.FAILED,
        "CANCELED": PaymentStatus.CANCELED,
    }

    def event_type(self, payload: dict[str, Any]) -> str:
        event = payload.get("type")
        return event if isinstance(event, str) and event else "charge"

    def parse(self, payload: dict[str, Any]) -> ParsedDelivery:
        charges = payload.get("charges")
        charge = charges[0] if isinstance(charges, list) and charges else payload
        if not isinstance(charge, dict) or not charge.get("id"):
            raise WebhookPayloadError(
                "Missing charge id",
                details={"provider": self.provider},
            )

        raw_status = charge.get("status")
        amount = charge.get("amount")
        return ParsedDelivery(
            items=[
                Correlation(
                    payment_id=str(charge["id"]),
                    target_status=self.map_status(raw_status),
                    raw_status=raw_status,
                    amount=to_decimal(amount.get("value")) if isinstance(amount, dict) else None,
                )
            ]
        )
