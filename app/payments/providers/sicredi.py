"""
Sicredi (instant-payment bank) webhook adapter.

When a webhook token is configured, Sicredi must send it either in
`X-Webhook-Token` or as `Authorization: Bearer <token>`.
"""

from __future__ import annotations

import hmac
from typing import TYPE_CHECKING

from django.conf import settings

from payments.exceptions import WebhookAuthenticationError
from payments.models import GatewaySecret
from payments.providers.pix import PixWebhookAdapter
from payments.state_machines import PaymentProvider

if TYPE_CHECKING:
    from django.http import HttpRequest


class SicrediWebhookAdapter(PixWebhookAdapter):
    provider = PaymentProvider.SICREDI
    payment_label = "Sicredi"

    def expected_token(self) -> str | None:
        return GatewaySecret.get_value(
            self.provider, GatewaySecret.WEBHOOK_TOKEN
        ) or getattr(settings, "SICREDI_WEBHOOK_TOKEN", "") or None

    def verify(self, request: HttpRequest) -> None:
        expected = self.expected_token()
        if not expected:
            return

        received = request.headers.get("X-Webhook-Token") or request.headers.get(
            "Authorization", ""
        )
        received = received.removeprefix("Bearer ").strip()

        if not received or not hmac.compare_digest(
            received.encode("utf-8"), expected.encode("utf-8")
        ):
            self.get_logger().warning(
                "Sicredi webhook token rejected",
                extra={"provider": self.provider, "token_present": bool(received)},
            )
            raise WebhookAuthenticationError(
                "Invalid webhook token",
                details={"provider": self.provider},
            )
