"""
Base class and data types for provider webhook adapters.

A provider adapter knows one provider's webhook dialect: how to verify a
delivery, which event type it carries, how to pull correlation values out
of the body and how to translate the provider's status vocabulary. The
reconciliation engine does everything else the same way for every
provider.

Usage:
    class AsaasWebhookAdapter(ProviderWebhookAdapter):
        provider = PaymentProvider.ASAAS
        status_map = {"CONFIRMED": PaymentStatus.PAID, ...}

        def parse(self, payload):
            ...
            return ParsedDelivery(items=[Correlation(...)])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, ClassVar

from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from django.db.models import Q
    from django.http import HttpRequest

CENTS = Decimal("0.01")


def to_decimal(value: Any) -> Decimal | None:
    """Provider amount (number or numeric string) as a 2-place Decimal, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return None


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class Correlation:
    """
    One payment referenced by a delivery.

    Attributes:
        payment_id: Provider payment identifier (primary lookup key)
        target_status: Internal status the delivery moves the payment to
        raw_status: Provider status string, for logs and responses
        fallback: Secondary lookup value, when the provider sends one
        fees: Provider fees, when the provider reports them
        amount: Amount the provider says was paid
        end_to_end_id: Pix end-to-end identifier
        item_payload: Part of the body describing this payment (pix items)
    """

    payment_id: str
    target_status: str
    raw_status: str | None = None
    fallback: str | None = None
    fees: Decimal | None = None
    amount: Decimal | None = None
    end_to_end_id: str | None = None
    item_payload: dict[str, Any] | None = None


@dataclass
class ParsedDelivery:
    """
    Result of parsing a webhook body.

    Either `ignored_reason` is set (event acknowledged, nothing to do) or
    `items` lists the payments to reconcile. `batch` marks pix array
    deliveries, which answer with per-item results.
    """

    items: list[Correlation] = field(default_factory=list)
    ignored_reason: str | None = None
    batch: bool = False

    @classmethod
    def ignored(cls, reason: str) -> ParsedDelivery:
        return cls(ignored_reason=reason)

    @property
    def is_ignored(self) -> bool:
        return self.ignored_reason is not None


# =============================================================================
# Adapter Base
# =============================================================================


class ProviderWebhookAdapter:
    """
    Base class for provider webhook adapters.

    Class Attributes:
        provider: Provider tag (PaymentProvider value)
        status_map: Provider status -> PaymentStatus
        dedupe_by_event_history: Detect redeliveries from earlier successful
            WebhookEvent rows before touching the transaction
        stores_item_payload: Save the pix item into raw_payload on update
        payment_label: Human name used in order timeline entries
        settles_invoices_by_charge_id: When no transaction matches, settle the
            owner invoice whose gateway_charge_id equals the payment id
    """

    provider: ClassVar[str]
    status_map: ClassVar[dict[str, str]] = {}
    dedupe_by_event_history: ClassVar[bool] = False
    stores_item_payload: ClassVar[bool] = False
    payment_label: ClassVar[str] = ""
    settles_invoices_by_charge_id: ClassVar[bool] = False

    def get_logger(self) -> logging.Logger:
        return logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")

    def map_status(self, raw_status: Any) -> str:
        """
        Translate a provider status into the internal vocabulary.

        Unknown, missing or non-string values map to PENDING. Never raises.
        """
        if not isinstance(raw_status, str):
            return PaymentStatus.PENDING
        return self.status_map.get(raw_status, PaymentStatus.PENDING)

    def event_type(self, payload: dict[str, Any]) -> str:
        """Event name stored on the WebhookEvent row."""
        return ""

    def verify(self, request: HttpRequest) -> None:
        """
        Authenticate the delivery.

        Raises:
            WebhookAuthenticationError: Signature or token does not verify
        """

    def parse(self, payload: dict[str, Any]) -> ParsedDelivery:
        """
        Extract correlations from the body.

        Raises:
            WebhookPayloadError: A required correlation field is missing
            ProviderLookupError: A provider API needed to read the status failed
        """
        raise NotImplementedError

    def fallback_filter(self, correlation: Correlation) -> Q | None:
        """
        Secondary PaymentTransaction filter, tried when the primary lookup
        misses. None means the provider has no fallback.
        """
        return None

    def event_history_filter(self, payload: dict[str, Any]) -> Q | None:
        """
        WebhookEvent filter matching earlier deliveries of the same payment.

        Only consulted when dedupe_by_event_history is set.
        """
        return None

    def order_event_description(self, correlation: Correlation, status: str) -> str:
        label = self.payment_label or self.provider
        if status == PaymentStatus.PAID and correlation.end_to_end_id is not None:
            amount = correlation.amount if correlation.amount is not None else Decimal("0.00")
            return (
                f"{label} PIX payment confirmed: R$ {amount:.2f} "
                f"(endToEndId: {correlation.end_to_end_id or 'N/A'})"
            )
        if status == PaymentStatus.PAID:
            return f"{label} payment confirmed"
        return f"{label} payment status changed to {status}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider={self.provider!r})"
