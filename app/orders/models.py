"""
Order and OrderEvent models.

Order is the commercial object a payment settles. Checkout and the seller
back-office create and edit orders; the payments app only touches the
payment-related fields as a side effect of webhook reconciliation.

OrderEvent is the order timeline shown to sellers and buyers. It is
append-only.

Usage:
    from orders.models import Order, OrderEvent, OrderStatus

    order = Order.objects.create(customer_email="buyer@example.com", total="150.00")
    order.apply_payment_status(PaymentStatus.PAID, paid_at=timezone.now())
    order.save()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from datetime import datetime


class OrderStatus(models.TextChoices):
    """Fulfilment-facing order status."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    CONFIRMED = "confirmed", "Confirmed"
    CANCELED = "canceled", "Canceled"
    REFUNDED = "refunded", "Refunded"
    EXPIRED = "expired", "Expired"


# Payment status -> order status. A pending payment leaves the order status
# alone.
ORDER_STATUS_FOR_PAYMENT = {
    PaymentStatus.PAID: OrderStatus.CONFIRMED,
    PaymentStatus.REFUNDED: OrderStatus.REFUNDED,
    PaymentStatus.CANCELED: OrderStatus.CANCELED,
    PaymentStatus.FAILED: OrderStatus.CANCELED,
    PaymentStatus.EXPIRED: OrderStatus.EXPIRED,
}


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    A buyer's order.

    Fields:
        customer_email: Buyer contact email
        total: Amount charged, in the store currency
        status: Fulfilment status
        payment_status: Mirrors the latest reconciled transaction status
        payment_provider / payment_method: Set when checkout starts a payment
        paid_at: When the payment was confirmed
    """

    customer_email = models.EmailField(
        blank=True,
        default="",
        help_text="Buyer contact email",
    )

    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=0,
        help_text="Order total in the store currency",
    )

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True,
    )

    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )

    payment_provider = models.CharField(max_length=20, blank=True, default="")
    payment_method = models.CharField(max_length=20, blank=True, default="")

    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        indexes = [
            models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
        ]

    def __str__(self) -> str:
        return f"Order({self.id}, {self.status}/{self.payment_status})"

    def apply_payment_status(self, payment_status: str, paid_at: datetime | None = None) -> None:
        """
        Mirror a reconciled payment status onto the order.

        Note: Does not save - caller must save after calling.
        """
        self.payment_status = payment_status
        order_status = ORDER_STATUS_FOR_PAYMENT.get(payment_status)
        if order_status is not None:
            self.status = order_status
        if payment_status == PaymentStatus.PAID:
            self.paid_at = paid_at


class OrderEventType(models.TextChoices):
    PAYMENT_CONFIRMED = "payment_confirmed", "Payment Confirmed"
    PAYMENT_STATUS_CHANGED = "payment_status_changed", "Payment Status Changed"


class OrderEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Append-only entry on an order's timeline.

    Fields:
        order: Order the entry belongs to
        event_type: What happened
        description: Human-readable summary shown in the back-office
        actor_type: "system" or "webhook"
        metadata: Identifiers needed to reconstruct the decision later
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="events",
    )

    event_type = models.CharField(
        max_length=40,
        choices=OrderEventType.choices,
        db_index=True,
    )

    description = models.TextField()

    actor_type = models.CharField(max_length=20, default="system")

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Order Event"
        verbose_name_plural = "Order Events"

    def __str__(self) -> str:
        return f"OrderEvent({self.order_id}, {self.event_type})"
