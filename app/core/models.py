"""
Abstract base model shared by every storefront domain model.

Domain apps (orders, payments, billing) inherit from BaseModel so that all
rows carry creation and modification timestamps. Mixins that change the
primary key live in core.model_mixins.

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin

    class PaymentTransaction(UUIDPrimaryKeyMixin, BaseModel):
        provider = models.CharField(max_length=20)

Note:
    Always list mixins before BaseModel in inheritance.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Abstract model providing created_at / updated_at.

    Fields:
        created_at: Set once when the row is inserted
        updated_at: Refreshed on every save() and on queryset update()
            calls that pass it explicitly
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self.pk})"
