"""
PaymentTransaction model.

One payment attempt at a provider. Checkout creates it in PENDING;
afterwards it is mutated only by webhook reconciliation and is never
deleted.

Usage:
    from payments.models import PaymentTransaction
    from payments.state_machines import PaymentStatus

    txn = PaymentTransaction.objects.create(
        order=order,
        provider="asaas",
        method="boleto",
        amount="100.00",
        provider_payment_id="pay_123",
    )

    # State transitions using django-fsm
    txn.mark_paid(paid_at=timezone.now())  # pending -> paid
    txn.save()
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import models

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentMethod, PaymentProvider, PaymentStatus

if TYPE_CHECKING:
    from datetime import datetime


class PaymentTransaction(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks one payment attempt against an order or an owner invoice.

    State Flow:
        PENDING -> PAID | FAILED | CANCELED | EXPIRED | REFUNDED
        FAILED | CANCELED | EXPIRED -> PENDING (provider restored the charge)
        FAILED | CANCELED | EXPIRED -> PAID (late confirmation)
        PAID -> REFUNDED

    A webhook whose target state cannot be reached from the current one
    (including the current state itself) is a redelivery and is skipped.
    REFUNDED is terminal.

    Fields:
        order: Buyer order this payment settles (nullable)
        invoice: Owner invoice this payment settles (nullable)
        provider: Provider tag
        method: pix, card or boleto
        amount / currency: Charged amount
        provider_payment_id: Provider's identifier, unique per provider
        provider_reference: Our reference as echoed back by the provider
        status: Current FSM state
        paid_at: When the payment was confirmed
        fees: Provider fees, when the provider reports them
        raw_payload: Provider payload stored verbatim
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
    )

    invoice = models.ForeignKey(
        "billing.OwnerInvoice",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
    )

    # ==========================================================================
    # Provider Identification
    # ==========================================================================

    provider = models.CharField(
        max_length=20,
        choices=PaymentProvider.choices,
        db_index=True,
    )

    method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.PIX,
    )

    provider_payment_id = models.CharField(
        max_length=255,
        help_text="Provider's payment identifier (payment id, charge id, pix txid)",
    )

    provider_reference = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Our reference as echoed back by the provider",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    currency = models.CharField(max_length=3, default="BRL")

    fees = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Provider fees reported on confirmation",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        help_text="Current payment status (managed by FSM)",
    )

    paid_at = models.DateTimeField(null=True, blank=True)

    raw_payload = models.JSONField(
        default=dict,
        blank=True,
        help_text="Provider payload stored verbatim",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Transaction"
        verbose_name_plural = "Payment Transactions"
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "provider_payment_id"],
                name="unique_provider_payment_id",
            ),
        ]

    def __str__(self) -> str:
        return f"PaymentTransaction({self.provider}:{self.provider_payment_id}, {self.status})"

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    @transition(
        field=status,
        source=[
            PaymentStatus.PENDING,
            PaymentStatus.FAILED,
            PaymentStatus.CANCELED,
            PaymentStatus.EXPIRED,
        ],
        target=PaymentStatus.PAID,
    )
    def mark_paid(self, paid_at: datetime, fees: Decimal | None = None):
        self.paid_at = paid_at
        if fees is not None:
            self.fees = fees

    @transition(field=status, source=PaymentStatus.PENDING, target=PaymentStatus.FAILED)
    def mark_failed(self):
        pass

    @transition(
        field=status,
        source=[PaymentStatus.PENDING, PaymentStatus.FAILED],
        target=PaymentStatus.CANCELED,
    )
    def mark_canceled(self):
        pass

    @transition(field=status, source=PaymentStatus.PENDING, target=PaymentStatus.EXPIRED)
    def mark_expired(self):
        pass

    @transition(
        field=status,
        source=[PaymentStatus.PENDING, PaymentStatus.PAID],
        target=PaymentStatus.REFUNDED,
    )
    def mark_refunded(self):
        pass

    @transition(
        field=status,
        source=[PaymentStatus.FAILED, PaymentStatus.CANCELED, PaymentStatus.EXPIRED],
        target=PaymentStatus.PENDING,
    )
    def reopen(self):
        pass

    def transition_for(self, target: str):
        """
        Bound transition method that moves this transaction to `target`.

        Usage:
            method = txn.transition_for(PaymentStatus.PAID)
            if can_proceed(method):
                method(paid_at=now)
        """
        return getattr(self, TRANSITION_FOR_STATUS[target])


TRANSITION_FOR_STATUS = {
    PaymentStatus.PAID: "mark_paid",
    PaymentStatus.FAILED: "mark_failed",
    PaymentStatus.CANCELED: "mark_canceled",
    PaymentStatus.EXPIRED: "mark_expired",
    PaymentStatus.REFUNDED: "mark_refunded",
    PaymentStatus.PENDING: "reopen",
}
