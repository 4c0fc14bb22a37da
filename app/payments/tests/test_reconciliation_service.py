"""
Tests for ReconciliationService.

Exercises the engine directly (no HTTP): transition rules, failure
handling, audit isolation and replay.
"""

import uuid
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from orders.models import OrderEvent, OrderStatus
from payments.models import WebhookEvent
from payments.providers import get_adapter
from payments.services.reconciliation_service import ReconciliationService
from payments.state_machines import PaymentStatus, WebhookOutcome
from payments.tests.factories import PaymentTransactionFactory, WebhookEventFactory


def asaas_event(payment_id, status, event="PAYMENT_UPDATED"):
    return WebhookEvent.objects.create(
        provider="asaas",
        event_type=event,
        payload={"event": event, "payment": {"id": payment_id, "status": status}},
    )


# =============================================================================
# Transition Rules
# =============================================================================


@pytest.mark.django_db
class TestTransitions:
    def test_late_confirmation_after_expiry(self):
        txn = PaymentTransactionFactory(
            provider_payment_id="pay_1", status=PaymentStatus.EXPIRED
        )

        result = ReconciliationService.run(get_adapter("asaas"), asaas_event("pay_1", "RECEIVED"))

        assert result.outcome == WebhookOutcome.RECONCILED
        txn.refresh_from_db()
        assert txn.status == PaymentStatus.PAID
        txn.order.refresh_from_db()
        assert txn.order.status == OrderStatus.CONFIRMED

    def test_restored_charge_reopens_transaction(self):
        txn = PaymentTransactionFactory(
            provider_payment_id="pay_1", status=PaymentStatus.CANCELED
        )
        txn.order.status = OrderStatus.CANCELED
        txn.order.save()

        result = ReconciliationService.run(get_adapter("asaas"), asaas_event("pay_1", "RESTORED"))

        assert result.outcome == WebhookOutcome.RECONCILED
        txn.refresh_from_db()
        txn.order.refresh_from_db()
        assert txn.status == PaymentStatus.PENDING
        assert txn.order.payment_status == PaymentStatus.PENDING
        assert txn.order.status == OrderStatus.CANCELED

    def test_refunded_is_terminal(self):
        txn = PaymentTransactionFactory(
            provider_payment_id="pay_1", status=PaymentStatus.REFUNDED
        )

        result = ReconciliationService.run(get_adapter("asaas"), asaas_event("pay_1", "RECEIVED"))

        assert result.outcome == WebhookOutcome.DUPLICATE
        assert result.http_status == 200
        txn.refresh_from_db()
        assert txn.status == PaymentStatus.REFUNDED
        assert OrderEvent.objects.count() == 0

    def test_unknown_status_on_pending_is_duplicate(self):
        PaymentTransactionFactory(provider_payment_id="pay_1")

        result = ReconciliationService.run(
            get_adapter("asaas"), asaas_event("pay_1", "AWAITING_RISK_ANALYSIS")
        )

        assert result.outcome == WebhookOutcome.DUPLICATE

    def test_fees_only_recorded_on_paid(self):
        txn = PaymentTransactionFactory(provider_payment_id="pay_1")
        event = WebhookEvent.objects.create(
            provider="asaas",
            event_type="PAYMENT_OVERDUE",
            payload={
                "event": "PAYMENT_OVERDUE",
                "payment": {"id": "pay_1", "status": "OVERDUE", "value": 100, "netValue": 97},
            },
        )

        ReconciliationService.run(get_adapter("asaas"), event)

        txn.refresh_from_db()
        assert txn.status == PaymentStatus.EXPIRED
        assert txn.fees is None

    def test_same_provider_id_at_another_provider_is_not_matched(self):
        PaymentTransactionFactory(provider="pagseguro", provider_payment_id="pay_1")

        result = ReconciliationService.run(get_adapter("asaas"), asaas_event("pay_1", "RECEIVED"))

        assert result.outcome == WebhookOutcome.NOT_FOUND


# =============================================================================
# Failure Handling
# =============================================================================


@pytest.mark.django_db
class TestFailureHandling:
    def test_unexpected_error_rolls_back_and_fails(self):
        txn = PaymentTransactionFactory(provider_payment_id="pay_1")
        event = asaas_event("pay_1", "RECEIVED")

        with patch(
            "payments.services.reconciliation_service.Order.save",
            side_effect=RuntimeError("boom"),
        ):
            result = ReconciliationService.run(get_adapter("asaas"), event)

        assert result.outcome == WebhookOutcome.FAILED
        assert result.http_status == 500
        txn.refresh_from_db()
        assert txn.status == PaymentStatus.PENDING
        event.refresh_from_db()
        assert event.outcome == WebhookOutcome.FAILED
        assert event.success is False
        assert "RuntimeError" in event.error

    def test_order_event_failure_keeps_payment(self):
        txn = PaymentTransactionFactory(provider_payment_id="pay_1")

        with patch(
            "payments.services.audit.OrderEvent.objects.create",
            side_effect=DatabaseError("timeline unavailable"),
        ):
            result = ReconciliationService.run(
                get_adapter("asaas"), asaas_event("pay_1", "RECEIVED")
            )

        assert result.outcome == WebhookOutcome.RECONCILED
        txn.refresh_from_db()
        assert txn.status == PaymentStatus.PAID
        assert OrderEvent.objects.count() == 0

    def test_verification_skipped_without_request(self, settings):
        settings.SICREDI_WEBHOOK_TOKEN = "s3cret"
        PaymentTransactionFactory(provider="sicredi", provider_payment_id="txid_1")
        event = WebhookEvent.objects.create(
            provider="sicredi", event_type="pix", payload={"pix": [{"txid": "txid_1"}]}
        )

        result = ReconciliationService.run(get_adapter("sicredi"), event)

        assert result.outcome == WebhookOutcome.RECONCILED


# =============================================================================
# Replay
# =============================================================================


@pytest.mark.django_db
class TestReplay:
    def test_replays_not_found_event_once_transaction_exists(self):
        event = WebhookEventFactory(
            payload={"event": "PAYMENT_RECEIVED", "payment": {"id": "pay_late", "status": "RECEIVED"}}
        )
        txn = PaymentTransactionFactory(provider_payment_id="pay_late")

        result = ReconciliationService.replay(event.id)

        assert result.success
        assert result.data.outcome == WebhookOutcome.RECONCILED
        event.refresh_from_db()
        assert event.outcome == WebhookOutcome.RECONCILED
        assert event.success is True
        txn.refresh_from_db()
        assert txn.status == PaymentStatus.PAID

    def test_unknown_event(self):
        result = ReconciliationService.replay(uuid.uuid4())

        assert not result
        assert result.error_code == "NOT_FOUND"

    def test_successful_event_is_not_replayed(self):
        event = WebhookEventFactory(outcome=WebhookOutcome.RECONCILED, success=True)

        result = ReconciliationService.replay(event.id)

        assert result.error_code == "ALREADY_PROCESSED"

    def test_rejected_event_is_not_replayable(self):
        event = WebhookEventFactory(outcome=WebhookOutcome.REJECTED)

        result = ReconciliationService.replay(event.id)

        assert result.error_code == "NOT_REPLAYABLE"

    def test_unknown_provider(self):
        event = WebhookEventFactory(provider="legacy_gateway")

        result = ReconciliationService.replay(event.id)

        assert result.error_code == "UNKNOWN_PROVIDER"
