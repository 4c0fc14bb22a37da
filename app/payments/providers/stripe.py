"""
Stripe (global card PSP) webhook adapter.

Handled events:
    checkout.session.completed -> paid, correlated by the session id with
        metadata.order_id as fallback
    charge.refunded -> refunded, correlated by the charge's payment_intent

Every other event type is acknowledged and ignored.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from django.db.models import Q

from payments.adapters import StripeAdapter
from payments.exceptions import WebhookPayloadError
from payments.providers.base import Correlation, ParsedDelivery, ProviderWebhookAdapter
from payments.state_machines import PaymentProvider, PaymentStatus

if TYPE_CHECKING:
    from django.http import HttpRequest

CHECKOUT_COMPLETED = "checkout.session.completed"
CHARGE_REFUNDED = "charge.refunded"


class StripeWebhookAdapter(ProviderWebhookAdapter):
    provider = PaymentProvider.STRIPE
    payment_label = "Stripe"

    status_map = {
        CHECKOUT_COMPLETED: PaymentStatus.PAID,
        CHARGE_REFUNDED: PaymentStatus.REFUNDED,
    }

    def event_type(self, payload: dict[str, Any]) -> str:
        event = payload.get("type")
        return event if isinstance(event, str) else ""

    def verify(self, request: HttpRequest) -> None:
        if StripeAdapter.is_signature_required():
            StripeAdapter.verify_webhook_signature(
                request.body, request.headers.get("Stripe-Signature")
            )

    def parse(self, payload: dict[str, Any]) -> ParsedDelivery:
        event_type = self.event_type(payload)
        if event_type not in self.status_map:
            return ParsedDelivery.ignored(f"Unhandled event type: {event_type or 'unknown'}")

        data = payload.get("data")
        obj = data.get("object") if isinstance(data, dict) else None
        if not isinstance(obj, dict) or not obj.get("id"):
            raise WebhookPayloadError(
                "Missing data.object.id",
                details={"provider": self.provider, "event_type": event_type},
            )

        if event_type == CHECKOUT_COMPLETED:
            metadata = obj.get("metadata")
            order_id = metadata.get("order_id") if isinstance(metadata, dict) else None
            if not order_id:
                raise WebhookPayloadError(
                    "No order_id in metadata",
                    details={"provider": self.provider, "event_type": event_type},
                )
            return ParsedDelivery(
                items=[
                    Correlation(
                        payment_id=str(obj["id"]),
                        target_status=self.map_status(event_type),
                        raw_status=event_type,
                        fallback=str(order_id),
                    )
                ]
            )

        payment_intent = obj.get("payment_intent")
        return ParsedDelivery(
            items=[
                Correlation(
                    payment_id=str(obj["id"]),
                    target_status=self.map_status(event_type),
                    raw_status=event_type,
                    fallback=str(payment_intent) if payment_intent else None,
                )
            ]
        )

    def fallback_filter(self, correlation: Correlation) -> Q | None:
        if not correlation.fallback:
            return None
        if correlation.target_status == PaymentStatus.REFUNDED:
            return Q(raw_payload__payment_intent=correlation.fallback)
        try:
            order_id = uuid.UUID(correlation.fallback)
        except ValueError:
            return None
        return Q(order_id=order_id)
