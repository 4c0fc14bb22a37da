"""
Celery tasks for payment webhooks.

This module provides async tasks for:
- Replaying a stored webhook delivery that did not succeed

Replay is the operator path for deliveries that failed or referenced a
transaction that did not exist yet. The provider's own redelivery remains
the normal recovery mechanism; there is no automatic retry loop.

Usage:
    from payments.tasks import replay_webhook_event

    replay_webhook_event.delay(str(webhook_event.id))
"""

from __future__ import annotations

from celery import shared_task

from payments.services.reconciliation_service import ReconciliationService


@shared_task(acks_late=True)
def replay_webhook_event(webhook_event_id: str) -> dict:
    """
    Re-run a stored delivery through the reconciliation engine.

    Args:
        webhook_event_id: UUID of the WebhookEvent to replay

    Returns:
        Dict with the replay outcome ("status" is the webhook outcome, or
        not_found / already_processed / not_replayable / unknown_provider)
    """
    result = ReconciliationService.replay(webhook_event_id)
    if not result:
        return {
            "status": result.error_code.lower(),
            "success": False,
            "webhook_event_id": str(webhook_event_id),
        }

    return {
        "status": result.data.outcome,
        "success": result.data.success,
        "webhook_event_id": str(webhook_event_id),
    }
