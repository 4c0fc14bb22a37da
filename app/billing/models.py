"""
Owner billing models.

OwnerSubscription is the platform plan a store operator pays for.
OwnerInvoice is one charge against that subscription, created by the
billing flow and settled by a payment-provider webhook. OwnerAuditLog is
the append-only trail of administrative and system actions.

Usage:
    from billing.models import OwnerSubscription, OwnerInvoice

    subscription = OwnerSubscription.objects.create(billing_cycle="monthly")
    invoice = OwnerInvoice.objects.create(subscription=subscription, amount="99.90")

    # State transitions using django-fsm
    subscription.mark_past_due()  # active -> past_due
    subscription.save()
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from django.db import models

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin

from billing.states import (
    AuditAction,
    AuditActorType,
    BillingCycle,
    InvoiceStatus,
    SubscriptionStatus,
)

if TYPE_CHECKING:
    from datetime import datetime


class OwnerSubscription(UUIDPrimaryKeyMixin, BaseModel):
    """
    Platform subscription of a store operator.

    State Flow:
        TRIALING/ACTIVE -> PAST_DUE (period ended with auto-renew on)
        TRIALING/ACTIVE/PAST_DUE -> SUSPENDED (period ended, no renewal)
        * -> ACTIVE (invoice paid)

    Fields:
        plan_id: Current plan (plans live outside this service)
        billing_cycle: Renewal period
        status: Current FSM state
        current_period_start/end: Paid-for window
        auto_renew: Whether the owner wants the plan renewed
        cancel_at_period_end: Whether cancellation is scheduled
        gateway: Provider used to charge the owner
    """

    plan_id = models.UUIDField(null=True, blank=True)

    billing_cycle = models.CharField(
        max_length=20,
        choices=BillingCycle.choices,
        default=BillingCycle.MONTHLY,
    )

    status = FSMField(
        default=SubscriptionStatus.TRIALING,
        choices=SubscriptionStatus.choices,
        db_index=True,
        help_text="Current state of the subscription (managed by FSM)",
    )

    current_period_start = models.DateTimeField(null=True, blank=True)
    current_period_end = models.DateTimeField(null=True, blank=True, db_index=True)

    auto_renew = models.BooleanField(default=True)
    cancel_at_period_end = models.BooleanField(default=False)

    gateway = models.CharField(max_length=20, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Owner Subscription"
        verbose_name_plural = "Owner Subscriptions"
        indexes = [
            models.Index(
                fields=["status", "current_period_end"],
                name="ownersub_status_period_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"OwnerSubscription({self.id}, {self.status})"

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    @transition(field=status, source="*", target=SubscriptionStatus.ACTIVE)
    def activate(self):
        """Activate after a confirmed payment."""

    @transition(
        field=status,
        source=[SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING],
        target=SubscriptionStatus.PAST_DUE,
    )
    def mark_past_due(self):
        """Period ended and the renewal charge has not been paid yet."""

    @transition(
        field=status,
        source=[
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.TRIALING,
            SubscriptionStatus.PAST_DUE,
        ],
        target=SubscriptionStatus.SUSPENDED,
    )
    def suspend(self):
        """
        Suspend a lapsed subscription.

        Renewal is switched off; the owner has to subscribe again.
        """
        self.auto_renew = False

    def start_period(self, now: datetime) -> None:
        """
        Begin a fresh billing period at `now`.

        Note: Does not save - caller must save after calling.
        """
        self.current_period_start = now
        self.current_period_end = now + timedelta(
            days=BillingCycle.days_for(self.billing_cycle)
        )


class OwnerInvoice(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    One charge against an owner subscription.

    metadata may carry a pending plan change ("plan_id", "billing_cycle")
    that takes effect once the invoice is paid.
    """

    subscription = models.ForeignKey(
        OwnerSubscription,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
    )

    amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    status = FSMField(
        default=InvoiceStatus.PENDING,
        choices=InvoiceStatus.choices,
        db_index=True,
    )

    gateway = models.CharField(max_length=20, blank=True, default="")

    gateway_charge_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Charge identifier at the provider (pix txid, payment id)",
    )

    due_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Owner Invoice"
        verbose_name_plural = "Owner Invoices"

    def __str__(self) -> str:
        return f"OwnerInvoice({self.id}, {self.status})"

    @transition(
        field=status,
        source=[InvoiceStatus.PENDING, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELED],
        target=InvoiceStatus.PAID,
    )
    def mark_paid(self, paid_at: datetime):
        self.paid_at = paid_at


class OwnerAuditLog(UUIDPrimaryKeyMixin, models.Model):
    """
    Append-only record of administrative and system actions.

    Rows are written by webhook reconciliation and by the expiry sweep
    and are never updated.
    """

    action = models.CharField(
        max_length=64,
        choices=AuditAction.choices,
        db_index=True,
    )

    actor_type = models.CharField(
        max_length=20,
        choices=AuditActorType.choices,
        default=AuditActorType.SYSTEM,
    )

    metadata = models.JSONField(default=dict, blank=True)

    ip = models.GenericIPAddressField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Owner Audit Log"
        verbose_name_plural = "Owner Audit Logs"

    def __str__(self) -> str:
        return f"OwnerAuditLog({self.action}, {self.actor_type})"
