"""
Pytest fixtures for payment tests.

Provides transactions in the shapes each provider correlates by, plus a
helper that posts a JSON webhook to the unified endpoint.

Usage:
    def test_asaas_paid(post_webhook, asaas_transaction):
        response = post_webhook("asaas", {"event": "PAYMENT_RECEIVED", ...})
        assert response.status_code == 200
"""

import json
from decimal import Decimal

import pytest
from django.urls import reverse

from billing.tests.factories import OwnerInvoiceFactory
from orders.tests.factories import OrderFactory
from payments.state_machines import PaymentMethod, PaymentProvider
from payments.tests.factories import PaymentTransactionFactory


# =============================================================================
# Request Helpers
# =============================================================================


@pytest.fixture
def post_webhook(client):
    """POST a JSON body (or raw string) to /api/v1/payments/webhooks/<provider>/."""

    def _post(provider, body, **headers):
        data = body if isinstance(body, (str, bytes)) else json.dumps(body)
        return client.post(
            reverse("payments:provider_webhook", kwargs={"provider": provider}),
            data=data,
            content_type="application/json",
            **headers,
        )

    return _post


# =============================================================================
# Transaction Fixtures
# =============================================================================


@pytest.fixture
def order(db):
    return OrderFactory(total=Decimal("100.00"))


@pytest.fixture
def asaas_transaction(db, order):
    """Pending Asaas charge carrying our order id as externalReference."""
    return PaymentTransactionFactory(
        order=order,
        provider=PaymentProvider.ASAAS,
        method=PaymentMethod.BOLETO,
        provider_payment_id="pay_asaas_1",
        provider_reference=str(order.id),
        amount=Decimal("100.00"),
    )


@pytest.fixture
def sicredi_transaction(db, order):
    return PaymentTransactionFactory(
        order=order,
        provider=PaymentProvider.SICREDI,
        method=PaymentMethod.PIX,
        provider_payment_id="txid_sicredi_1",
        amount=Decimal("50.00"),
    )


@pytest.fixture
def efi_invoice(db):
    return OwnerInvoiceFactory(gateway_charge_id="txid_efi_invoice")


@pytest.fixture
def efi_invoice_transaction(db, efi_invoice):
    """Pix charge for an owner invoice; primary id differs from the txid."""
    return PaymentTransactionFactory(
        order=None,
        invoice=efi_invoice,
        provider=PaymentProvider.EFI,
        method=PaymentMethod.PIX,
        provider_payment_id="efi_charge_1",
        amount=efi_invoice.amount,
    )


@pytest.fixture
def stripe_transaction(db, order):
    """Card payment started through a Checkout Session."""
    return PaymentTransactionFactory(
        order=order,
        provider=PaymentProvider.STRIPE,
        method=PaymentMethod.CARD,
        provider_payment_id="cs_test_1",
        raw_payload={"id": "cs_test_1", "payment_intent": "pi_test_1"},
    )


@pytest.fixture
def mercadopago_transaction(db, order):
    return PaymentTransactionFactory(
        order=order,
        provider=PaymentProvider.MERCADOPAGO,
        method=PaymentMethod.CARD,
        provider_payment_id="123456789",
    )


@pytest.fixture
def pagseguro_transaction(db, order):
    return PaymentTransactionFactory(
        order=order,
        provider=PaymentProvider.PAGSEGURO,
        method=PaymentMethod.CARD,
        provider_payment_id="CHAR_1",
    )
