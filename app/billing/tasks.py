"""
Celery tasks for owner billing.

Usage:
    from billing.tasks import check_subscription_expiry

    # Runs hourly via celery-beat (see migration 0002)
    check_subscription_expiry.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from billing.services import SubscriptionBillingService

logger = logging.getLogger(__name__)


@shared_task(acks_late=True)
def check_subscription_expiry() -> dict:
    """
    Demote owner subscriptions whose current period has ended.

    Per-subscription failures are logged inside the sweep, so this task
    only fails when the sweep itself cannot run. There is no retry: the
    next hourly run picks up whatever was left.

    Returns:
        Dict with "checked" and "updated" counts
    """
    logger.info("Starting subscription expiry sweep")
    return SubscriptionBillingService.sweep_expired()
