"""
Audit recorder for reconciliation and the subscription-expiry sweep.

Every state-changing reconciliation appends one entry: an OrderEvent for
buyer orders, an OwnerAuditLog row for owner billing. Each write runs in
its own savepoint so that a failed audit insert is reported without
unwinding the state change it describes.

Usage:
    from payments.services.audit import AuditRecorder

    AuditRecorder.record_owner_action(
        AuditAction.SUBSCRIPTION_PAST_DUE,
        actor_type=AuditActorType.SYSTEM,
        metadata={"subscription_id": str(subscription.id)},
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.db import DatabaseError, transaction

from billing.models import OwnerAuditLog
from orders.models import OrderEvent

if TYPE_CHECKING:
    from orders.models import Order

logger = logging.getLogger(__name__)


class AuditRecorder:
    """Appends audit entries without ever failing the caller."""

    @staticmethod
    def record_order_event(
        order: Order,
        event_type: str,
        description: str,
        actor_type: str = "webhook",
        metadata: dict[str, Any] | None = None,
    ) -> OrderEvent | None:
        try:
            with transaction.atomic():
                return OrderEvent.objects.create(
                    order=order,
                    event_type=event_type,
                    description=description,
                    actor_type=actor_type,
                    metadata=metadata or {},
                )
        except DatabaseError:
            logger.exception(
                "Failed to record order event",
                extra={"order_id": str(order.id), "event_type": event_type},
            )
            return None

    @staticmethod
    def record_owner_action(
        action: str,
        actor_type: str,
        metadata: dict[str, Any] | None = None,
        ip: str | None = None,
    ) -> OwnerAuditLog | None:
        try:
            with transaction.atomic():
                return OwnerAuditLog.objects.create(
                    action=action,
                    actor_type=actor_type,
                    metadata=metadata or {},
                    ip=ip,
                )
        except DatabaseError:
            logger.exception(
                "Failed to record owner audit log",
                extra={"action": action, "actor_type": actor_type},
            )
            return None
