"""
WebhookEvent model for inbound provider deliveries.

One row per inbound delivery, written before any business logic so the
delivery stays observable even when handling fails. Asaas redeliveries
are also detected against these rows.

Usage:
    from payments.models import WebhookEvent

    event = WebhookEvent.objects.create(
        provider="asaas",
        event_type="PAYMENT_RECEIVED",
        payload=body,
    )

    # ... reconcile ...

    event.mark_outcome(WebhookOutcome.RECONCILED)
    event.save()
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import (
    SUCCESSFUL_OUTCOMES,
    PaymentProvider,
    WebhookOutcome,
)


class WebhookEvent(UUIDPrimaryKeyMixin, models.Model):
    """
    Audit record of one inbound webhook delivery.

    Processing Flow:
        1. Delivery arrives, row is created with outcome RECEIVED
        2. Provider adapter verifies and parses the payload
        3. Engine reconciles (or short-circuits as duplicate/ignored)
        4. This same row gets the final outcome, success flag and error

    Fields:
        provider: Provider tag
        event_type: Provider event name (empty when the payload has none)
        payload: Request body as received
        processed_at: When handling finished
        success: True for reconciled, duplicate and ignored outcomes
        error: Error message when handling did not succeed
        outcome: Final handling outcome

    Note:
        Only success, outcome, error and processed_at change after creation.
        Unsuccessful rows can be replayed from the admin.
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    provider = models.CharField(
        max_length=20,
        choices=PaymentProvider.choices,
        db_index=True,
    )

    event_type = models.CharField(
        max_length=100,
        blank=True,
        default="",
        db_index=True,
        help_text="Provider event type (e.g., 'PAYMENT_RECEIVED', 'charge.refunded')",
    )

    payload = models.JSONField(
        default=dict,
        help_text="Request body as received from the provider",
    )

    # ==========================================================================
    # Processing Result
    # ==========================================================================

    outcome = models.CharField(
        max_length=20,
        choices=WebhookOutcome.choices,
        default=WebhookOutcome.RECEIVED,
        db_index=True,
    )

    success = models.BooleanField(default=False, db_index=True)

    error = models.TextField(null=True, blank=True)

    processed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(
                fields=["provider", "event_type", "success"],
                name="webhook_provider_type_ok_idx",
            ),
            models.Index(fields=["outcome", "created_at"], name="webhook_outcome_created_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.provider}, {self.event_type or '-'}, {self.outcome})"

    @property
    def can_replay(self) -> bool:
        """Unsuccessful deliveries that reached business logic can be replayed."""
        return not self.success and self.outcome in (
            WebhookOutcome.NOT_FOUND,
            WebhookOutcome.FAILED,
        )

    def mark_outcome(self, outcome: str, error: str | None = None) -> None:
        """
        Record how handling ended.

        Note: Does not save - caller must save after calling.
        """
        self.outcome = outcome
        self.success = outcome in SUCCESSFUL_OUTCOMES
        self.error = error
        self.processed_at = timezone.now()
