"""
Shared parsing for pix notification webhooks (Efí and Sicredi).

Body shape:
    {"pix": [{"txid": "txid_1", "valor": "50.00", "endToEndId": "E123",
              "horario": "2024-01-01T12:00:00Z"}, ...]}

A pix notification means the charge was paid, so every item maps to
PAID. Items without a txid are skipped.
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
from payments.state_machines import PaymentStatus


class PixWebhookAdapter(ProviderWebhookAdapter):
    """Base adapter for providers that post `pix[]` arrays."""

    stores_item_payload = True

    def event_type(self, payload: dict[str, Any]) -> str:
        return "pix"

    def map_status(self, raw_status: Any) -> str:
        return PaymentStatus.PAID

    def parse(self, payload: dict[str, Any]) -> ParsedDelivery:
        pix_items = payload.get("pix")
        if not isinstance(pix_items, list):
            raise WebhookPayloadError(
                "Missing pix array",
                details={"provider": self.provider},
            )

        items = []
        for item in pix_items:
            if not isinstance(item, dict) or not item.get("txid"):
                continue
            items.append(
                Correlation(
                    payment_id=str(item["txid"]),
                    target_status=self.map_status(item),
                    fallback=str(item["txid"]),
                    amount=to_decimal(item.get("valor")),
                    end_to_end_id=str(item.get("endToEndId") or ""),
                    item_payload=item,
                )
            )

        if not items:
            raise WebhookPayloadError(
                "No pix item carries a txid",
                details={"provider": self.provider},
            )
        return ParsedDelivery(items=items, batch=True)
