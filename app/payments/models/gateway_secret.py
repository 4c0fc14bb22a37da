"""
GatewaySecret model: per-provider credentials managed from the admin.

Usage:
    from payments.models import GatewaySecret

    token = GatewaySecret.get_value("sicredi", "webhook_token")
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentProvider


class GatewaySecret(UUIDPrimaryKeyMixin, BaseModel):
    """
    A named credential for one provider.

    Known keys:
        mercadopago / access_token: Bearer token for the payments API
        sicredi / webhook_token: Shared token Sicredi sends with webhooks
    """

    ACCESS_TOKEN = "access_token"
    WEBHOOK_TOKEN = "webhook_token"

    provider = models.CharField(max_length=20, choices=PaymentProvider.choices)
    key = models.CharField(max_length=64)
    value = models.TextField()

    class Meta:
        ordering = ["provider", "key"]
        verbose_name = "Gateway Secret"
        verbose_name_plural = "Gateway Secrets"
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "key"],
                name="unique_gateway_secret_key",
            ),
        ]

    def __str__(self) -> str:
        return f"GatewaySecret({self.provider}, {self.key})"

    @classmethod
    def get_value(cls, provider: str, key: str) -> str | None:
        """Stored value, or None when no non-empty secret exists."""
        value = (
            cls.objects.filter(provider=provider, key=key)
            .values_list("value", flat=True)
            .first()
        )
        return value or None
