"""
Model mixins providing reusable fields for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
    MetadataMixin: Flexible JSON metadata storage

Usage:
    from core.models import BaseModel
    from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin

    class OwnerInvoice(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
        amount = models.DecimalField(max_digits=12, decimal_places=2)

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
"""

from __future__ import annotations

import uuid
from typing import Any

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    Identifiers of orders, transactions and invoices travel to payment
    providers as references, so they must not reveal record counts.

    Fields:
        id: UUIDField as primary key (auto-generated)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class MetadataMixin(models.Model):
    """
    Free-form JSON metadata attached to a record.

    Fields:
        metadata: JSON object, defaults to {}

    Usage:
        invoice.set_metadata("plan_id", str(plan_id))
        cycle = invoice.get_metadata("billing_cycle", "monthly")
    """

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata",
    )

    class Meta:
        abstract = True

    def get_metadata(self, key: str, default: Any = None) -> Any:
        """Return a metadata value, tolerating a null column."""
        return (self.metadata or {}).get(key, default)

    def set_metadata(self, key: str, value: Any) -> None:
        """
        Set a metadata value.

        Note: Does not save - caller must save after calling.
        """
        if self.metadata is None:
            self.metadata = {}
        self.metadata[key] = value
