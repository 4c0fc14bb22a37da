"""
Mercado Pago (card/wallet PSP) webhook adapter.

Body shape:
    {"type": "payment", "action": "payment.updated", "data": {"id": "123"}}

The notification carries no status; it is read from the payments API
through MercadoPagoAdapter on every delivery.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from payments.adapters import MercadoPagoAdapter
from payments.exceptions import WebhookPayloadError
from payments.providers.base import (
    Correlation,
    ParsedDelivery,
    ProviderWebhookAdapter,
    to_decimal,
)
from payments.state_machines import PaymentProvider, PaymentStatus


class MercadoPagoWebhookAdapter(ProviderWebhookAdapter):
    provider = PaymentProvider.MERCADOPAGO
    payment_label = "Mercado Pago"

    status_map = {
        "approved": PaymentStatus.PAID,
        "pending": PaymentStatus.PENDING,
        "authorized": PaymentStatus.PENDING,
        "in_process": PaymentStatus.PENDING,
        "rejected": PaymentStatus.FAILED,
        "cancelled": PaymentStatus.CANCELED,
        "refunded": PaymentStatus.REFUNDED,
        "charged_back": PaymentStatus.REFUNDED,
    }

    def event_type(self, payload: dict[str, Any]) -> str:
        for key in ("type", "action"):
            if isinstance(payload.get(key), str) and payload[key]:
                return payload[key]
        return ""

    def parse(self, payload: dict[str, Any]) -> ParsedDelivery:
        if payload.get("type") != "payment" and payload.get("action") != "payment.updated":
            return ParsedDelivery.ignored("Not a payment notification")

        data = payload.get("data")
        payment_id = data.get("id") if isinstance(data, dict) else None
        if not payment_id:
            raise WebhookPayloadError(
                "Missing data.id",
                details={"provider": self.provider},
            )

        payment = MercadoPagoAdapter.fetch_payment(str(payment_id))
        raw_status = payment.get("status")

        return ParsedDelivery(
            items=[
                Correlation(
                    payment_id=str(payment_id),
                    target_status=self.map_status(raw_status),
                    raw_status=raw_status,
                    fees=self.sum_fees(payment.get("fee_details")),
                    amount=to_decimal(payment.get("transaction_amount")),
                )
            ]
        )

    @staticmethod
    def sum_fees(fee_details: Any) -> Decimal | None:
        """Sum of fee_details[].amount; None when no fee is itemized."""
        if not isinstance(fee_details, list) or not fee_details:
            return None
        total = Decimal("0.00")
        for fee in fee_details:
            amount = to_decimal(fee.get("amount")) if isinstance(fee, dict) else None
            if amount is not None:
                total += amount
        return total
