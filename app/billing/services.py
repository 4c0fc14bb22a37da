"""
Owner billing services.

SubscriptionBillingService holds the two flows that mutate owner
subscriptions:

- apply_invoice_payment: called by webhook reconciliation when a
  transaction linked to an invoice is confirmed paid.
- sweep_expired: called by the periodic expiry task; demotes lapsed
  subscriptions to past_due, then suspended.

Usage:
    from billing.services import SubscriptionBillingService

    with transaction.atomic():
        SubscriptionBillingService.apply_invoice_payment(invoice, now=timezone.now())

    counts = SubscriptionBillingService.sweep_expired()
    # {"checked": 3, "updated": 3}
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.db import DatabaseError
from django.utils import timezone
from django_fsm import can_proceed

from core.services import BaseService

from billing.models import OwnerSubscription
from billing.states import (
    SWEEPABLE_STATUSES,
    AuditAction,
    AuditActorType,
    SubscriptionStatus,
)
from payments.services.audit import AuditRecorder

if TYPE_CHECKING:
    from datetime import datetime

    from billing.models import OwnerInvoice


class SubscriptionBillingService(BaseService):
    """Period bookkeeping for owner subscriptions."""

    @classmethod
    def apply_invoice_payment(
        cls,
        invoice: OwnerInvoice,
        now: datetime,
        audit_metadata: dict[str, Any] | None = None,
    ) -> bool:
        """
        Settle an invoice and renew its subscription.

        Must run inside the caller's transaction. Returns False when the
        invoice was already paid, in which case nothing is touched.

        Args:
            invoice: Invoice locked by the caller
            now: Reconciliation timestamp, shared with the transaction
            audit_metadata: Correlation details for the PAYMENT_RECEIVED entry
        """
        if not can_proceed(invoice.mark_paid):
            cls.get_logger().info(
                "Invoice already paid, skipping",
                extra={"invoice_id": str(invoice.id)},
            )
            return False

        invoice.mark_paid(paid_at=now)
        invoice.save(update_fields=["status", "paid_at", "updated_at"])

        subscription = invoice.subscription
        if subscription is not None:
            subscription = OwnerSubscription.objects.select_for_update().get(
                pk=subscription.pk
            )

            pending_plan = invoice.get_metadata("plan_id")
            pending_cycle = invoice.get_metadata("billing_cycle")
            if pending_plan:
                subscription.plan_id = pending_plan
            if pending_cycle:
                subscription.billing_cycle = pending_cycle

            # Cycle is resolved after the pending change so the new length applies.
            subscription.start_period(now)
            subscription.activate()
            subscription.save()

        AuditRecorder.record_owner_action(
            AuditAction.PAYMENT_RECEIVED,
            actor_type=AuditActorType.WEBHOOK,
            metadata={
                "invoice_id": str(invoice.id),
                "subscription_id": str(subscription.id) if subscription else None,
                "amount": str(invoice.amount),
                **(audit_metadata or {}),
            },
        )

        cls.get_logger().info(
            "Invoice paid, subscription renewed",
            extra={
                "invoice_id": str(invoice.id),
                "subscription_id": str(subscription.id) if subscription else None,
            },
        )
        return True

    @classmethod
    def sweep_expired(cls, now: datetime | None = None) -> dict[str, int]:
        """
        Demote every subscription whose period has ended.

        auto_renew on and not yet past_due -> past_due
        otherwise -> suspended (auto_renew forced off)

        Each subscription is updated in its own transaction; a failure on
        one is logged and the sweep moves on.

        Returns:
            {"checked": <subscriptions examined>, "updated": <subscriptions changed>}
        """
        now = now or timezone.now()
        logger = cls.get_logger()

        expired_ids = list(
            OwnerSubscription.objects.filter(
                status__in=SWEEPABLE_STATUSES,
                current_period_end__lt=now,
            ).values_list("id", flat=True)
        )

        updated = 0
        for subscription_id in expired_ids:
            try:
                if cls._demote(subscription_id, now):
                    updated += 1
            except DatabaseError:
                logger.exception(
                    "Failed to demote expired subscription",
                    extra={"subscription_id": str(subscription_id)},
                )

        logger.info(
            "Subscription expiry sweep finished",
            extra={"checked": len(expired_ids), "updated": updated},
        )
        return {"checked": len(expired_ids), "updated": updated}

    @classmethod
    def _demote(cls, subscription_id, now: datetime) -> bool:
        with cls.atomic():
            subscription = (
                OwnerSubscription.objects.select_for_update()
                .filter(
                    id=subscription_id,
                    status__in=SWEEPABLE_STATUSES,
                    current_period_end__lt=now,
                )
                .first()
            )
            if subscription is None:
                # Renewed or changed since the sweep started.
                return False

            previous_status = subscription.status
            if subscription.auto_renew and previous_status != SubscriptionStatus.PAST_DUE:
                subscription.mark_past_due()
                action = AuditAction.SUBSCRIPTION_PAST_DUE
            else:
                subscription.suspend()
                action = AuditAction.SUBSCRIPTION_SUSPENDED_AUTO

            subscription.save(update_fields=["status", "auto_renew", "updated_at"])

            AuditRecorder.record_owner_action(
                action,
                actor_type=AuditActorType.SYSTEM,
                metadata={
                    "subscription_id": str(subscription.id),
                    "previous_status": previous_status,
                    "current_period_end": subscription.current_period_end.isoformat(),
                },
            )

        cls.get_logger().info(
            "Subscription demoted",
            extra={
                "subscription_id": str(subscription.id),
                "from_status": previous_status,
                "to_status": subscription.status,
            },
        )
        return True
