"""
Tests for the unified provider webhook endpoint.

Tests cover, per provider:
- Reconciliation of transaction, order and timeline
- Redelivery idempotency
- Correlation fallbacks
- Authentication (Stripe signature, Sicredi token)
- Malformed and unknown deliveries
"""

import hashlib
import hmac
import json
import time
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests
from django.urls import reverse

from billing.models import OwnerAuditLog
from billing.states import AuditAction, InvoiceStatus, SubscriptionStatus
from billing.tests.factories import OwnerInvoiceFactory
from orders.models import OrderEvent, OrderEventType, OrderStatus
from payments.models import PaymentTransaction, WebhookEvent
from payments.state_machines import PaymentStatus, WebhookOutcome
from payments.tests.factories import GatewaySecretFactory, PaymentTransactionFactory


def asaas_body(payment_id="pay_asaas_1", status="RECEIVED", **payment):
    return {
        "event": "PAYMENT_RECEIVED",
        "payment": {"id": payment_id, "status": status, "value": 100, **payment},
    }


# =============================================================================
# Endpoint Basics
# =============================================================================


@pytest.mark.django_db
class TestEndpoint:
    def test_options_returns_empty_object(self, client):
        response = client.options(
            reverse("payments:provider_webhook", kwargs={"provider": "asaas"})
        )

        assert response.status_code == 200
        assert response.json() == {}

    def test_get_not_allowed(self, client):
        response = client.get(
            reverse("payments:provider_webhook", kwargs={"provider": "asaas"})
        )

        assert response.status_code == 405

    def test_cors_preflight_allows_any_origin(self, client):
        response = client.options(
            reverse("payments:provider_webhook", kwargs={"provider": "sicredi"}),
            HTTP_ORIGIN="https://sandbox.example.com",
            HTTP_ACCESS_CONTROL_REQUEST_METHOD="POST",
        )

        assert response.status_code == 200
        assert response["Access-Control-Allow-Origin"] == "https://sandbox.example.com"

    @pytest.mark.parametrize("provider,status", [("asaas", 400), ("paypal", 404)])
    def test_server_to_server_post_gets_cors_headers(self, client, provider, status):
        response = client.post(
            reverse("payments:provider_webhook", kwargs={"provider": provider}),
            data="not json",
            content_type="application/json",
        )

        assert response.status_code == status
        assert response["Access-Control-Allow-Origin"] == "*"
        assert response["Access-Control-Allow-Methods"] == "POST, OPTIONS"
        assert "x-webhook-token" in response["Access-Control-Allow-Headers"]

    def test_unknown_provider_returns_404_without_logging(self, post_webhook):
        response = post_webhook("paypal", {"id": "x"})

        assert response.status_code == 404
        assert response.json()["success"] is False
        assert WebhookEvent.objects.count() == 0

    @pytest.mark.parametrize("body", ["not json", "[1, 2]", '"string"', ""])
    def test_malformed_body_is_logged_and_rejected(self, post_webhook, body):
        response = post_webhook("asaas", body)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["outcome"] == WebhookOutcome.REJECTED

        event = WebhookEvent.objects.get()
        assert event.outcome == WebhookOutcome.REJECTED
        assert event.success is False
        assert event.payload == {"raw_body": body}


# =============================================================================
# Asaas
# =============================================================================


@pytest.mark.django_db
class TestAsaasWebhook:
    def test_received_marks_paid_with_fees(self, post_webhook, asaas_transaction):
        response = post_webhook("asaas", asaas_body(netValue=97))

        assert response.status_code == 200
        data = response.json()
        assert data == {
            "success": True,
            "outcome": WebhookOutcome.RECONCILED,
            "provider": "asaas",
            "status": PaymentStatus.PAID,
        }

        asaas_transaction.refresh_from_db()
        assert asaas_transaction.status == PaymentStatus.PAID
        assert asaas_transaction.fees == Decimal("3.00")
        assert asaas_transaction.paid_at is not None

        order = asaas_transaction.order
        order.refresh_from_db()
        assert order.status == OrderStatus.CONFIRMED
        assert order.payment_status == PaymentStatus.PAID
        assert order.paid_at == asaas_transaction.paid_at

        event = OrderEvent.objects.get(order=order)
        assert event.event_type == OrderEventType.PAYMENT_CONFIRMED
        assert event.actor_type == "webhook"
        assert event.metadata["payment_id"] == "pay_asaas_1"

        webhook_event = WebhookEvent.objects.get()
        assert webhook_event.event_type == "PAYMENT_RECEIVED"
        assert webhook_event.outcome == WebhookOutcome.RECONCILED
        assert webhook_event.success is True
        assert webhook_event.processed_at is not None

    def test_redelivery_is_a_no_op(self, post_webhook, asaas_transaction):
        post_webhook("asaas", asaas_body(netValue=97))
        asaas_transaction.refresh_from_db()
        paid_at = asaas_transaction.paid_at

        response = post_webhook("asaas", asaas_body(netValue=97))

        assert response.status_code == 200
        assert response.json()["outcome"] == WebhookOutcome.DUPLICATE
        asaas_transaction.refresh_from_db()
        assert asaas_transaction.paid_at == paid_at
        assert OrderEvent.objects.count() == 1
        assert WebhookEvent.objects.count() == 2

    def test_falls_back_to_external_reference(self, post_webhook, asaas_transaction):
        body = asaas_body(
            payment_id="pay_other", externalReference=asaas_transaction.provider_reference
        )

        response = post_webhook("asaas", body)

        assert response.status_code == 200
        asaas_transaction.refresh_from_db()
        assert asaas_transaction.status == PaymentStatus.PAID

    def test_overdue_expires_order(self, post_webhook, asaas_transaction):
        response = post_webhook("asaas", asaas_body(status="OVERDUE"))

        assert response.json()["status"] == PaymentStatus.EXPIRED
        asaas_transaction.order.refresh_from_db()
        assert asaas_transaction.order.status == OrderStatus.EXPIRED
        event = OrderEvent.objects.get()
        assert event.event_type == OrderEventType.PAYMENT_STATUS_CHANGED
        assert event.description == "Asaas payment status changed to expired"

    def test_unknown_payment_returns_404_and_changes_nothing(
        self, post_webhook, asaas_transaction
    ):
        response = post_webhook("asaas", asaas_body(payment_id="pay_unknown"))

        assert response.status_code == 404
        data = response.json()
        assert data["success"] is False
        assert data["outcome"] == WebhookOutcome.NOT_FOUND
        asaas_transaction.refresh_from_db()
        assert asaas_transaction.status == PaymentStatus.PENDING
        assert OrderEvent.objects.count() == 0

        webhook_event = WebhookEvent.objects.get()
        assert webhook_event.outcome == WebhookOutcome.NOT_FOUND
        assert webhook_event.can_replay is True

    def test_missing_payment_id_is_rejected(self, post_webhook):
        response = post_webhook("asaas", {"event": "PAYMENT_RECEIVED", "payment": {}})

        assert response.status_code == 400
        assert response.json()["outcome"] == WebhookOutcome.REJECTED
        assert WebhookEvent.objects.get().outcome == WebhookOutcome.REJECTED

    def test_earlier_successful_delivery_short_circuits(
        self, post_webhook, asaas_transaction
    ):
        post_webhook("asaas", asaas_body())
        # Simulate a manual correction after the first delivery
        asaas_transaction.refresh_from_db()
        asaas_transaction.status = PaymentStatus.PENDING
        asaas_transaction.save()

        response = post_webhook("asaas", asaas_body())

        assert response.json()["outcome"] == WebhookOutcome.DUPLICATE
        asaas_transaction.refresh_from_db()
        assert asaas_transaction.status == PaymentStatus.PENDING

    def test_deliveries_without_event_name_are_not_deduplicated(
        self, post_webhook, asaas_transaction
    ):
        post_webhook("asaas", {"payment": {"id": "pay_asaas_1", "status": "RECEIVED"}})

        response = post_webhook(
            "asaas", {"payment": {"id": "pay_asaas_1", "status": "REFUNDED"}}
        )

        assert response.json()["outcome"] == WebhookOutcome.RECONCILED
        assert set(WebhookEvent.objects.values_list("event_type", flat=True)) == {"unknown"}
        asaas_transaction.refresh_from_db()
        assert asaas_transaction.status == PaymentStatus.REFUNDED


# =============================================================================
# Pix: Sicredi and Efí
# =============================================================================


@pytest.mark.django_db
class TestSicrediWebhook:
    def test_pix_batch_marks_paid_and_keeps_item(self, post_webhook, sicredi_transaction):
        item = {"txid": "txid_sicredi_1", "valor": "50.00", "endToEndId": "E12345"}

        response = post_webhook("sicredi", {"pix": [item]})

        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == WebhookOutcome.RECONCILED
        assert data["results"] == [
            {
                "payment_id": "txid_sicredi_1",
                "outcome": WebhookOutcome.RECONCILED,
                "status": PaymentStatus.PAID,
                "transaction_id": str(sicredi_transaction.id),
            }
        ]

        sicredi_transaction.refresh_from_db()
        assert sicredi_transaction.status == PaymentStatus.PAID
        assert sicredi_transaction.raw_payload["_webhook_event"] == item
        event = OrderEvent.objects.get()
        assert "R$ 50.00" in event.description
        assert "E12345" in event.description
        assert event.metadata["end_to_end_id"] == "E12345"

    def test_pix_redelivery_is_duplicate(self, post_webhook, sicredi_transaction):
        body = {"pix": [{"txid": "txid_sicredi_1", "valor": "50.00"}]}
        post_webhook("sicredi", body)

        response = post_webhook("sicredi", body)

        assert response.status_code == 200
        assert response.json()["outcome"] == WebhookOutcome.DUPLICATE
        assert OrderEvent.objects.count() == 1

    def test_unknown_item_fails_delivery_but_keeps_known_items(
        self, post_webhook, sicredi_transaction
    ):
        body = {
            "pix": [
                {"txid": "txid_sicredi_1", "valor": "50.00"},
                {"txid": "txid_unknown", "valor": "10.00"},
            ]
        }

        response = post_webhook("sicredi", body)

        assert response.status_code == 404
        outcomes = [r["outcome"] for r in response.json()["results"]]
        assert outcomes == [WebhookOutcome.RECONCILED, WebhookOutcome.NOT_FOUND]
        sicredi_transaction.refresh_from_db()
        assert sicredi_transaction.status == PaymentStatus.PAID

    def test_items_without_txid_only_are_rejected(self, post_webhook):
        response = post_webhook("sicredi", {"pix": [{"valor": "1.00"}]})

        assert response.status_code == 400

    def test_token_required_when_configured(self, post_webhook, sicredi_transaction):
        GatewaySecretFactory(value="s3cret")
        body = {"pix": [{"txid": "txid_sicredi_1", "valor": "50.00"}]}

        response = post_webhook("sicredi", body)

        assert response.status_code == 401
        assert response.json()["outcome"] == WebhookOutcome.REJECTED
        sicredi_transaction.refresh_from_db()
        assert sicredi_transaction.status == PaymentStatus.PENDING

    def test_wrong_token_is_rejected(self, post_webhook, sicredi_transaction):
        GatewaySecretFactory(value="s3cret")

        response = post_webhook(
            "sicredi",
            {"pix": [{"txid": "txid_sicredi_1"}]},
            HTTP_X_WEBHOOK_TOKEN="guess",
        )

        assert response.status_code == 401

    @pytest.mark.parametrize(
        "headers",
        [{"HTTP_X_WEBHOOK_TOKEN": "s3cret"}, {"HTTP_AUTHORIZATION": "Bearer s3cret"}],
    )
    def test_valid_token_is_accepted(self, post_webhook, sicredi_transaction, headers):
        GatewaySecretFactory(value="s3cret")

        response = post_webhook(
            "sicredi", {"pix": [{"txid": "txid_sicredi_1", "valor": "50.00"}]}, **headers
        )

        assert response.status_code == 200

    def test_token_from_settings(self, post_webhook, sicredi_transaction, settings):
        settings.SICREDI_WEBHOOK_TOKEN = "from-env"

        response = post_webhook("sicredi", {"pix": [{"txid": "txid_sicredi_1"}]})

        assert response.status_code == 401


@pytest.mark.django_db
class TestEfiWebhook:
    def test_invoice_payment_renews_subscription(
        self, post_webhook, efi_invoice, efi_invoice_transaction
    ):
        subscription = efi_invoice.subscription
        subscription.status = SubscriptionStatus.PAST_DUE
        subscription.save()

        response = post_webhook(
            "efi", {"pix": [{"txid": "txid_efi_invoice", "valor": "99.90"}]}
        )

        assert response.status_code == 200
        efi_invoice_transaction.refresh_from_db()
        efi_invoice.refresh_from_db()
        subscription.refresh_from_db()
        assert efi_invoice_transaction.status == PaymentStatus.PAID
        assert efi_invoice.status == InvoiceStatus.PAID
        assert efi_invoice.paid_at == efi_invoice_transaction.paid_at
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.current_period_start == efi_invoice_transaction.paid_at

        entry = OwnerAuditLog.objects.get()
        assert entry.action == AuditAction.PAYMENT_RECEIVED
        assert entry.metadata["payment_id"] == "txid_efi_invoice"

    def test_double_delivery_extends_period_once(
        self, post_webhook, efi_invoice, efi_invoice_transaction
    ):
        body = {"pix": [{"txid": "txid_efi_invoice", "valor": "99.90"}]}
        post_webhook("efi", body)
        efi_invoice.subscription.refresh_from_db()
        period_end = efi_invoice.subscription.current_period_end

        response = post_webhook("efi", body)

        assert response.json()["outcome"] == WebhookOutcome.DUPLICATE
        efi_invoice.subscription.refresh_from_db()
        assert efi_invoice.subscription.current_period_end == period_end
        assert OwnerAuditLog.objects.count() == 1

    def test_owner_charge_without_transaction_settles_invoice(self, post_webhook):
        invoice = OwnerInvoiceFactory(gateway_charge_id="txid_owner_1")
        subscription = invoice.subscription
        subscription.status = SubscriptionStatus.PAST_DUE
        subscription.save()

        response = post_webhook(
            "efi",
            {"pix": [{"txid": "txid_owner_1", "valor": "99.90", "endToEndId": "E999"}]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == WebhookOutcome.RECONCILED
        assert data["results"] == [
            {
                "payment_id": "txid_owner_1",
                "outcome": WebhookOutcome.RECONCILED,
                "status": InvoiceStatus.PAID,
                "transaction_id": None,
            }
        ]
        invoice.refresh_from_db()
        subscription.refresh_from_db()
        assert invoice.status == InvoiceStatus.PAID
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.current_period_start == invoice.paid_at
        assert not PaymentTransaction.objects.exists()

        entry = OwnerAuditLog.objects.get()
        assert entry.action == AuditAction.PAYMENT_RECEIVED
        assert entry.metadata["payment_id"] == "txid_owner_1"
        assert entry.metadata["end_to_end_id"] == "E999"

    def test_owner_charge_redelivery_is_duplicate(self, post_webhook):
        invoice = OwnerInvoiceFactory(gateway_charge_id="txid_owner_1")
        body = {"pix": [{"txid": "txid_owner_1", "valor": "99.90"}]}
        post_webhook("efi", body)
        invoice.subscription.refresh_from_db()
        period_end = invoice.subscription.current_period_end

        response = post_webhook("efi", body)

        assert response.status_code == 200
        assert response.json()["outcome"] == WebhookOutcome.DUPLICATE
        invoice.subscription.refresh_from_db()
        assert invoice.subscription.current_period_end == period_end
        assert OwnerAuditLog.objects.count() == 1

    def test_unknown_txid_is_not_found(self, post_webhook):
        OwnerInvoiceFactory(gateway_charge_id="txid_owner_1")

        response = post_webhook("efi", {"pix": [{"txid": "txid_other"}]})

        assert response.status_code == 404

    def test_sicredi_does_not_settle_owner_invoices(self, post_webhook):
        invoice = OwnerInvoiceFactory(gateway_charge_id="txid_owner_1")

        response = post_webhook("sicredi", {"pix": [{"txid": "txid_owner_1"}]})

        assert response.status_code == 404
        invoice.refresh_from_db()
        assert invoice.status == InvoiceStatus.PENDING


# =============================================================================
# Mercado Pago
# =============================================================================


def mercadopago_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body if body is not None else {}
    return response


@pytest.mark.django_db
class TestMercadoPagoWebhook:
    @pytest.fixture(autouse=True)
    def access_token(self, settings):
        settings.MERCADOPAGO_ACCESS_TOKEN = "APP_USR-test"

    @patch("payments.adapters.mercadopago_adapter.requests.get")
    def test_approved_payment_is_reconciled(
        self, mock_get, post_webhook, mercadopago_transaction
    ):
        mock_get.return_value = mercadopago_response(
            body={
                "id": 123456789,
                "status": "approved",
                "transaction_amount": 100,
                "fee_details": [{"amount": 4.99}],
            }
        )

        response = post_webhook(
            "mercadopago", {"type": "payment", "data": {"id": "123456789"}}
        )

        assert response.status_code == 200
        url = mock_get.call_args.args[0]
        assert url.endswith("/v1/payments/123456789")
        assert mock_get.call_args.kwargs["headers"] == {
            "Authorization": "Bearer APP_USR-test"
        }
        mercadopago_transaction.refresh_from_db()
        assert mercadopago_transaction.status == PaymentStatus.PAID
        assert mercadopago_transaction.fees == Decimal("4.99")

    @patch("payments.adapters.mercadopago_adapter.requests.get")
    def test_api_timeout_fails_delivery(
        self, mock_get, post_webhook, mercadopago_transaction
    ):
        mock_get.side_effect = requests.Timeout("read timed out")

        response = post_webhook(
            "mercadopago", {"type": "payment", "data": {"id": "123456789"}}
        )

        assert response.status_code == 500
        assert response.json()["outcome"] == WebhookOutcome.FAILED
        webhook_event = WebhookEvent.objects.get()
        assert webhook_event.outcome == WebhookOutcome.FAILED
        assert webhook_event.can_replay is True
        mercadopago_transaction.refresh_from_db()
        assert mercadopago_transaction.status == PaymentStatus.PENDING

    @patch("payments.adapters.mercadopago_adapter.requests.get")
    def test_api_error_status_fails_delivery(
        self, mock_get, post_webhook, mercadopago_transaction
    ):
        mock_get.return_value = mercadopago_response(status_code=404)

        response = post_webhook(
            "mercadopago", {"type": "payment", "data": {"id": "123456789"}}
        )

        assert response.status_code == 500

    @patch("payments.adapters.mercadopago_adapter.requests.get")
    def test_other_notifications_are_ignored(self, mock_get, post_webhook):
        response = post_webhook(
            "mercadopago", {"type": "merchant_order", "data": {"id": "1"}}
        )

        assert response.status_code == 200
        assert response.json()["outcome"] == WebhookOutcome.IGNORED
        mock_get.assert_not_called()
        assert WebhookEvent.objects.get().success is True

    def test_missing_access_token_fails_delivery(self, post_webhook, settings):
        settings.MERCADOPAGO_ACCESS_TOKEN = ""

        response = post_webhook(
            "mercadopago", {"type": "payment", "data": {"id": "123456789"}}
        )

        assert response.status_code == 500


# =============================================================================
# PagSeguro
# =============================================================================


@pytest.mark.django_db
class TestPagSeguroWebhook:
    def test_declined_charge_cancels_order(self, post_webhook, pagseguro_transaction):
        response = post_webhook(
            "pagseguro",
            {"id": "ORDE_1", "charges": [{"id": "CHAR_1", "status": "DECLINED"}]},
        )

        assert response.status_code == 200
        pagseguro_transaction.refresh_from_db()
        assert pagseguro_transaction.status == PaymentStatus.FAILED
        pagseguro_transaction.order.refresh_from_db()
        assert pagseguro_transaction.order.status == OrderStatus.CANCELED


# =============================================================================
# Stripe
# =============================================================================


def stripe_signature(body: str, secret: str, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{body}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signed}"


def checkout_completed(session_id, order_id):
    return {
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {"object": {"id": session_id, "metadata": {"order_id": str(order_id)}}},
    }


@pytest.mark.django_db
class TestStripeWebhook:
    def test_checkout_completed_marks_paid(self, post_webhook, stripe_transaction):
        response = post_webhook(
            "stripe", checkout_completed("cs_test_1", stripe_transaction.order_id)
        )

        assert response.status_code == 200
        stripe_transaction.refresh_from_db()
        assert stripe_transaction.status == PaymentStatus.PAID

    def test_falls_back_to_metadata_order_id(self, post_webhook, stripe_transaction):
        response = post_webhook(
            "stripe", checkout_completed("cs_unknown", stripe_transaction.order_id)
        )

        assert response.status_code == 200
        stripe_transaction.refresh_from_db()
        assert stripe_transaction.status == PaymentStatus.PAID

    def test_ambiguous_order_fallback_fails(self, post_webhook, stripe_transaction):
        PaymentTransactionFactory(
            order=stripe_transaction.order,
            provider="stripe",
            provider_payment_id="cs_test_2",
        )

        response = post_webhook(
            "stripe", checkout_completed("cs_unknown", stripe_transaction.order_id)
        )

        assert response.status_code == 500
        assert response.json()["outcome"] == WebhookOutcome.FAILED

    def test_charge_refunded_by_payment_intent(self, post_webhook, stripe_transaction):
        stripe_transaction.status = PaymentStatus.PAID
        stripe_transaction.save()

        response = post_webhook(
            "stripe",
            {
                "type": "charge.refunded",
                "data": {"object": {"id": "ch_1", "payment_intent": "pi_test_1"}},
            },
        )

        assert response.status_code == 200
        stripe_transaction.refresh_from_db()
        assert stripe_transaction.status == PaymentStatus.REFUNDED
        stripe_transaction.order.refresh_from_db()
        assert stripe_transaction.order.status == OrderStatus.REFUNDED

    def test_unhandled_event_is_ignored(self, post_webhook):
        response = post_webhook("stripe", {"type": "invoice.created", "data": {}})

        assert response.status_code == 200
        assert response.json()["outcome"] == WebhookOutcome.IGNORED

    def test_missing_signature_rejected_when_secret_set(
        self, post_webhook, stripe_transaction, settings
    ):
        settings.STRIPE_WEBHOOK_SECRET = "whsec_test"

        response = post_webhook(
            "stripe", checkout_completed("cs_test_1", stripe_transaction.order_id)
        )

        assert response.status_code == 401
        stripe_transaction.refresh_from_db()
        assert stripe_transaction.status == PaymentStatus.PENDING

    def test_invalid_signature_rejected(self, post_webhook, stripe_transaction, settings):
        settings.STRIPE_WEBHOOK_SECRET = "whsec_test"
        body = json.dumps(checkout_completed("cs_test_1", stripe_transaction.order_id))

        response = post_webhook(
            "stripe", body, HTTP_STRIPE_SIGNATURE=stripe_signature(body, "whsec_other")
        )

        assert response.status_code == 401

    def test_valid_signature_accepted(self, post_webhook, stripe_transaction, settings):
        settings.STRIPE_WEBHOOK_SECRET = "whsec_test"
        body = json.dumps(checkout_completed("cs_test_1", stripe_transaction.order_id))

        response = post_webhook(
            "stripe", body, HTTP_STRIPE_SIGNATURE=stripe_signature(body, "whsec_test")
        )

        assert response.status_code == 200
        stripe_transaction.refresh_from_db()
        assert stripe_transaction.status == PaymentStatus.PAID
