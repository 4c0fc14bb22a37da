"""
Asaas (boleto/pix aggregator) webhook adapter.

Body shape:
    {"event": "PAYMENT_RECEIVED",
     "payment": {"id": "pay_123", "status": "RECEIVED", "value": 100,
                 "netValue": 97, "externalReference": "..."}}

Asaas redelivers events freely, so redeliveries are detected from earlier
successful WebhookEvent rows before the transaction is looked at.
"""

from __future__ import annotations

from typing import Any

from django.db.models import Q

from payments.exceptions import WebhookPayloadError
from payments.providers.base import (
    Correlation,
    ParsedDelivery,
    ProviderWebhookAdapter,
    to_decimal,
)
from payments.state_machines import PaymentProvider, PaymentStatus

UNKNOWN_EVENT = "unknown"


class AsaasWebhookAdapter(ProviderWebhookAdapter):
    provider = PaymentProvider.ASAAS
    payment_label = "Asaas"
    dedupe_by_event_history = True

    status_map = {
        "CONFIRMED": PaymentStatus.PAID,
        "RECEIVED": PaymentStatus.PAID,
        "RECEIVED_IN_CASH": PaymentStatus.PAID,
        "OVERDUE": PaymentStatus.EXPIRED,
        "REFUNDED": PaymentStatus.REFUNDED,
        "REFUND_REQUESTED": PaymentStatus.REFUNDED,
        "DELETED": PaymentStatus.CANCELED,
        "RESTORED": PaymentStatus.PENDING,
        "PENDING": PaymentStatus.PENDING,
    }

    def event_type(self, payload: dict[str, Any]) -> str:
        event = payload.get("event")
        return event if isinstance(event, str) and event else UNKNOWN_EVENT

    def parse(self, payload: dict[str, Any]) -> ParsedDelivery:
        payment = payload.get("payment")
        if not isinstance(payment, dict) or not payment.get("id"):
            raise WebhookPayloadError(
                "Missing payment.id",
                details={"provider": self.provider},
            )

        raw_status = payment.get("status")
        value = to_decimal(payment.get("value"))
        net_value = to_decimal(payment.get("netValue"))
        fees = value - net_value if value is not None and net_value is not None else None

        reference = payment.get("externalReference")
        return ParsedDelivery(
            items=[
                Correlation(
                    payment_id=str(payment["id"]),
                    target_status=self.map_status(raw_status),
                    raw_status=raw_status,
                    fallback=str(reference) if reference else None,
                    fees=fees,
                    amount=value,
                )
            ]
        )

    def event_history_filter(self, payload: dict[str, Any]) -> Q | None:
        # Deliveries without an event name cannot be told apart
        if self.event_type(payload) == UNKNOWN_EVENT:
            return None
        # Matches the id as sent, so numeric and string ids both work.
        return Q(payload__payment__id=payload["payment"]["id"])

    def fallback_filter(self, correlation: Correlation) -> Q | None:
        if not correlation.fallback:
            return None
        return Q(raw_payload__externalReference=correlation.fallback) | Q(
            provider_reference=correlation.fallback
        )
