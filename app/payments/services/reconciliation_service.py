"""
Webhook reconciliation engine.

Turns one inbound provider delivery into consistent internal state. The
flow is the same for every provider; the provider adapter supplies the
dialect (verification, parsing, status map, fallback lookup).

Flow per delivery:
    verify -> parse -> (ignored) | event-history guard -> per payment:
    lock + locate -> transition guard -> apply -> audit

Outcomes and HTTP status:
    reconciled / duplicate / ignored -> 200
    rejected (malformed or unauthenticated) -> 400 / 401
    not_found -> 404
    failed -> 500

Usage:
    from payments.services.reconciliation_service import ReconciliationService

    webhook_event = WebhookEvent.objects.create(provider="asaas", payload=body, ...)
    result = ReconciliationService.run(adapter, webhook_event, request=request)
    return JsonResponse(result.to_response(), status=result.http_status)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from django.db import transaction
from django.utils import timezone
from django_fsm import can_proceed

from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult

from billing.models import OwnerInvoice
from billing.services import SubscriptionBillingService
from orders.models import Order, OrderEventType
from payments.exceptions import AmbiguousTransactionError
from payments.models import PaymentTransaction, WebhookEvent
from payments.providers import get_adapter
from payments.services.audit import AuditRecorder
from payments.state_machines import PaymentStatus, WebhookOutcome

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from django.http import HttpRequest

    from payments.providers import Correlation, ProviderWebhookAdapter


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class ItemResult:
    """Outcome of reconciling one payment of a delivery."""

    payment_id: str
    outcome: str
    status: str | None = None
    transaction_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "outcome": self.outcome,
            "status": self.status,
            "transaction_id": self.transaction_id,
        }


@dataclass
class WebhookResult:
    """
    Outcome of one delivery, ready to be turned into a JSON response.

    Attributes:
        provider: Provider tag
        outcome: WebhookOutcome value
        http_status: Status code to answer with
        status: Internal payment status (single-payment deliveries)
        results: Per-payment results (pix batches)
        error: Error message for unsuccessful outcomes
    """

    provider: str
    outcome: str
    http_status: int = 200
    status: str | None = None
    results: list[ItemResult] = field(default_factory=list)
    error: str | None = None
    batch: bool = False

    @property
    def success(self) -> bool:
        return self.http_status < 400

    def to_response(self) -> dict[str, Any]:
        response: dict[str, Any] = {
            "success": self.success,
            "outcome": self.outcome,
            "provider": self.provider,
        }
        if self.status is not None:
            response["status"] = self.status
        if self.batch:
            response["results"] = [item.to_dict() for item in self.results]
        if self.error:
            response["error"] = self.error
        return response


OUTCOME_HTTP_STATUS = {
    WebhookOutcome.RECONCILED: 200,
    WebhookOutcome.DUPLICATE: 200,
    WebhookOutcome.IGNORED: 200,
    WebhookOutcome.NOT_FOUND: 404,
}


# =============================================================================
# Transaction Locator
# =============================================================================


class TransactionLocator:
    """
    Finds the transaction a delivery refers to, row-locked.

    Must be called inside a transaction.atomic() block.
    """

    @staticmethod
    def locate(
        adapter: ProviderWebhookAdapter, correlation: Correlation
    ) -> PaymentTransaction | None:
        """
        Primary lookup by provider payment id, then the adapter's fallback.

        Returns:
            The locked transaction, or None when nothing matches

        Raises:
            AmbiguousTransactionError: The fallback matched several rows
        """
        queryset = PaymentTransaction.objects.select_for_update(of=("self",)).filter(
            provider=adapter.provider
        )

        try:
            return queryset.get(provider_payment_id=correlation.payment_id)
        except PaymentTransaction.DoesNotExist:
            pass

        fallback = adapter.fallback_filter(correlation)
        if fallback is None:
            return None

        try:
            return queryset.get(fallback)
        except PaymentTransaction.DoesNotExist:
            return None
        except PaymentTransaction.MultipleObjectsReturned as e:
            raise AmbiguousTransactionError(
                "Fallback reference matches more than one transaction",
                details={
                    "provider": adapter.provider,
                    "payment_id": correlation.payment_id,
                    "reference": correlation.fallback,
                },
            ) from e


# =============================================================================
# State Applier
# =============================================================================


class StateApplier:
    """Applies a reconciled status to a transaction and everything it settles."""

    @classmethod
    def apply(
        cls,
        adapter: ProviderWebhookAdapter,
        txn: PaymentTransaction,
        correlation: Correlation,
        webhook_event: WebhookEvent,
        now: datetime,
    ) -> None:
        """
        Move the transaction to the target status and propagate it.

        Runs inside the caller's atomic block; the caller has checked that
        the transition is allowed. `now` stamps both transaction and order.
        """
        target = correlation.target_status
        previous_status = txn.status

        transition = txn.transition_for(target)
        if target == PaymentStatus.PAID:
            transition(paid_at=now, fees=correlation.fees)
        else:
            transition()

        if adapter.stores_item_payload and correlation.item_payload is not None:
            txn.raw_payload = {**webhook_event.payload, "_webhook_event": correlation.item_payload}

        txn.save()

        audit_metadata = {
            "provider": adapter.provider,
            "payment_id": correlation.payment_id,
            "transaction_id": str(txn.id),
            "webhook_event_id": str(webhook_event.id),
            "previous_status": previous_status,
            "status": target,
        }
        if correlation.amount is not None:
            audit_metadata["amount"] = str(correlation.amount)
        if correlation.end_to_end_id is not None:
            audit_metadata["end_to_end_id"] = correlation.end_to_end_id

        if txn.order_id:
            cls._apply_to_order(adapter, txn, correlation, now, audit_metadata)

        if txn.invoice_id and target == PaymentStatus.PAID:
            invoice = OwnerInvoice.objects.select_for_update().get(pk=txn.invoice_id)
            SubscriptionBillingService.apply_invoice_payment(
                invoice, now=now, audit_metadata=audit_metadata
            )

    @staticmethod
    def _apply_to_order(
        adapter: ProviderWebhookAdapter,
        txn: PaymentTransaction,
        correlation: Correlation,
        now: datetime,
        audit_metadata: dict[str, Any],
    ) -> None:
        target = correlation.target_status
        order = Order.objects.select_for_update().get(pk=txn.order_id)
        order.apply_payment_status(target, paid_at=now)
        order.save()

        AuditRecorder.record_order_event(
            order,
            event_type=(
                OrderEventType.PAYMENT_CONFIRMED
                if target == PaymentStatus.PAID
                else OrderEventType.PAYMENT_STATUS_CHANGED
            ),
            description=adapter.order_event_description(correlation, target),
            actor_type="webhook",
            metadata=audit_metadata,
        )


# =============================================================================
# Reconciliation Service
# =============================================================================


class ReconciliationService(BaseService):
    """
    Reconciles provider webhook deliveries.

    Design Notes:
        - Every delivery already has its WebhookEvent row; only that row
          receives the outcome
        - Each payment of a batch runs in its own transaction, so payments
          resolved before a failure stay applied
        - Redeliveries are no-ops: the transaction row is locked and the
          FSM transition must be allowed from its current status
    """

    @classmethod
    def run(
        cls,
        adapter: ProviderWebhookAdapter,
        webhook_event: WebhookEvent,
        request: HttpRequest | None = None,
    ) -> WebhookResult:
        """
        Handle a logged delivery end to end and record its outcome.

        Args:
            adapter: Provider adapter
            webhook_event: Row created for this delivery
            request: Inbound request, used for signature/token checks.
                None when replaying a stored delivery.

        Returns:
            WebhookResult; never raises
        """
        logger = cls.get_logger()
        log_context = {
            "provider": adapter.provider,
            "event_type": webhook_event.event_type,
            "webhook_event_id": str(webhook_event.id),
        }

        try:
            result = cls.process(adapter, webhook_event, request=request)
        except BaseApplicationError as e:
            result = WebhookResult(
                provider=adapter.provider,
                outcome=(
                    WebhookOutcome.REJECTED if e.http_status < 500 else WebhookOutcome.FAILED
                ),
                http_status=e.http_status,
                error=e.message,
            )
            log = logger.warning if e.http_status < 500 else logger.error
            log(
                f"Webhook {result.outcome}: {e.message}",
                extra={**log_context, "error_code": e.error_code, "details": e.details},
                exc_info=e.http_status >= 500,
            )
        except Exception as e:
            logger.exception("Webhook processing failed", extra=log_context)
            result = WebhookResult(
                provider=adapter.provider,
                outcome=WebhookOutcome.FAILED,
                http_status=500,
                error=f"Internal error: {e.__class__.__name__}",
            )

        webhook_event.mark_outcome(result.outcome, error=result.error)
        webhook_event.save(update_fields=["outcome", "success", "error", "processed_at"])

        logger.info(
            f"Webhook handled: {result.outcome}",
            extra={**log_context, "http_status": result.http_status},
        )
        return result

    @classmethod
    def process(
        cls,
        adapter: ProviderWebhookAdapter,
        webhook_event: WebhookEvent,
        request: HttpRequest | None = None,
    ) -> WebhookResult:
        """
        Verify, parse and reconcile a delivery.

        Raises:
            WebhookAuthenticationError: Signature or token rejected
            WebhookPayloadError: Body lacks a correlation field
            ProviderLookupError: Provider API lookup failed
            AmbiguousTransactionError: Fallback matched several transactions
        """
        if request is not None:
            adapter.verify(request)

        parsed = adapter.parse(webhook_event.payload)

        if parsed.is_ignored:
            cls.get_logger().info(
                "Webhook event ignored",
                extra={
                    "provider": adapter.provider,
                    "event_type": webhook_event.event_type,
                    "reason": parsed.ignored_reason,
                },
            )
            return WebhookResult(provider=adapter.provider, outcome=WebhookOutcome.IGNORED)

        if adapter.dedupe_by_event_history and cls.seen_before(adapter, webhook_event):
            correlation = parsed.items[0]
            return WebhookResult(
                provider=adapter.provider,
                outcome=WebhookOutcome.DUPLICATE,
                status=correlation.target_status,
            )

        results = [
            cls.reconcile_item(adapter, correlation, webhook_event)
            for correlation in parsed.items
        ]

        outcomes = {item.outcome for item in results}
        if WebhookOutcome.NOT_FOUND in outcomes:
            outcome = WebhookOutcome.NOT_FOUND
        elif WebhookOutcome.RECONCILED in outcomes:
            outcome = WebhookOutcome.RECONCILED
        else:
            outcome = WebhookOutcome.DUPLICATE

        return WebhookResult(
            provider=adapter.provider,
            outcome=outcome,
            http_status=OUTCOME_HTTP_STATUS[outcome],
            status=None if parsed.batch else results[0].status,
            results=results,
            error="Transaction not found" if outcome == WebhookOutcome.NOT_FOUND else None,
            batch=parsed.batch,
        )

    @staticmethod
    def seen_before(adapter: ProviderWebhookAdapter, webhook_event: WebhookEvent) -> bool:
        """True when an earlier delivery of the same event succeeded."""
        history_filter = adapter.event_history_filter(webhook_event.payload)
        if history_filter is None:
            return False
        return (
            WebhookEvent.objects.filter(
                history_filter,
                provider=adapter.provider,
                event_type=webhook_event.event_type,
                success=True,
            )
            .exclude(pk=webhook_event.pk)
            .exists()
        )

    @classmethod
    def reconcile_item(
        cls,
        adapter: ProviderWebhookAdapter,
        correlation: Correlation,
        webhook_event: WebhookEvent,
    ) -> ItemResult:
        """Reconcile one payment in its own transaction."""
        logger = cls.get_logger()
        log_context = {
            "provider": adapter.provider,
            "payment_id": correlation.payment_id,
            "webhook_event_id": str(webhook_event.id),
        }

        with transaction.atomic():
            txn = TransactionLocator.locate(adapter, correlation)

            if txn is None and adapter.settles_invoices_by_charge_id:
                invoice_result = cls.settle_invoice(adapter, correlation, webhook_event)
                if invoice_result is not None:
                    return invoice_result

            if txn is None:
                logger.warning("Transaction not found for webhook", extra=log_context)
                return ItemResult(
                    payment_id=correlation.payment_id,
                    outcome=WebhookOutcome.NOT_FOUND,
                )

            target = correlation.target_status
            if not can_proceed(txn.transition_for(target)):
                logger.info(
                    "Transition not allowed, treating as redelivery",
                    extra={**log_context, "current_status": txn.status, "target_status": target},
                )
                return ItemResult(
                    payment_id=correlation.payment_id,
                    outcome=WebhookOutcome.DUPLICATE,
                    status=txn.status,
                    transaction_id=str(txn.id),
                )

            StateApplier.apply(adapter, txn, correlation, webhook_event, now=timezone.now())

        logger.info(
            f"Transaction reconciled to {target}",
            extra={**log_context, "transaction_id": str(txn.id)},
        )
        return ItemResult(
            payment_id=correlation.payment_id,
            outcome=WebhookOutcome.RECONCILED,
            status=target,
            transaction_id=str(txn.id),
        )

    @classmethod
    def settle_invoice(
        cls,
        adapter: ProviderWebhookAdapter,
        correlation: Correlation,
        webhook_event: WebhookEvent,
    ) -> ItemResult | None:
        """
        Settle an owner invoice charged directly at the provider.

        Owner charges have no PaymentTransaction; the invoice is matched by
        its gateway charge id. Runs inside the caller's atomic block.

        Returns:
            ItemResult, or None when no invoice carries the charge id

        Raises:
            AmbiguousTransactionError: Several invoices share the charge id
        """
        if correlation.target_status != PaymentStatus.PAID:
            return None

        try:
            invoice = OwnerInvoice.objects.select_for_update().get(
                gateway_charge_id=correlation.payment_id
            )
        except OwnerInvoice.DoesNotExist:
            return None
        except OwnerInvoice.MultipleObjectsReturned as e:
            raise AmbiguousTransactionError(
                "Charge id matches more than one owner invoice",
                details={"provider": adapter.provider, "payment_id": correlation.payment_id},
            ) from e

        audit_metadata = {
            "provider": adapter.provider,
            "payment_id": correlation.payment_id,
            "webhook_event_id": str(webhook_event.id),
        }
        if correlation.amount is not None:
            audit_metadata["amount"] = str(correlation.amount)
        if correlation.end_to_end_id:
            audit_metadata["end_to_end_id"] = correlation.end_to_end_id

        paid = SubscriptionBillingService.apply_invoice_payment(
            invoice, now=timezone.now(), audit_metadata=audit_metadata
        )
        cls.get_logger().info(
            "Owner invoice settled by charge id" if paid else "Owner invoice already paid",
            extra={**audit_metadata, "invoice_id": str(invoice.id)},
        )
        return ItemResult(
            payment_id=correlation.payment_id,
            outcome=WebhookOutcome.RECONCILED if paid else WebhookOutcome.DUPLICATE,
            status=invoice.status,
        )

    @classmethod
    def replay(cls, webhook_event_id: UUID | str) -> ServiceResult[WebhookResult]:
        """
        Re-run a stored delivery through the engine.

        Only deliveries that found no transaction or failed internally can
        be replayed. Verification is skipped: the payload was accepted when
        it first arrived. The outcome is written to the same row.

        Returns:
            ServiceResult with the WebhookResult, or a failure with one of
            NOT_FOUND, ALREADY_PROCESSED, NOT_REPLAYABLE, UNKNOWN_PROVIDER
        """
        logger = cls.get_logger()
        log_context = {"webhook_event_id": str(webhook_event_id)}

        webhook_event = WebhookEvent.objects.filter(id=webhook_event_id).first()
        if webhook_event is None:
            logger.error("WebhookEvent not found for replay", extra=log_context)
            return ServiceResult.failure("Webhook event not found", error_code="NOT_FOUND")

        if webhook_event.success:
            logger.info("WebhookEvent already succeeded, skipping replay", extra=log_context)
            return ServiceResult.failure(
                "Webhook event already processed", error_code="ALREADY_PROCESSED"
            )

        if not webhook_event.can_replay:
            logger.warning(
                f"WebhookEvent with outcome {webhook_event.outcome} cannot be replayed",
                extra=log_context,
            )
            return ServiceResult.failure(
                f"Outcome {webhook_event.outcome} cannot be replayed",
                error_code="NOT_REPLAYABLE",
            )

        adapter = get_adapter(webhook_event.provider)
        if adapter is None:
            logger.error(
                "No adapter for stored webhook provider",
                extra={**log_context, "provider": webhook_event.provider},
            )
            return ServiceResult.failure(
                f"Unknown provider: {webhook_event.provider}",
                error_code="UNKNOWN_PROVIDER",
            )

        logger.info(
            "Replaying webhook event",
            extra={
                **log_context,
                "provider": webhook_event.provider,
                "event_type": webhook_event.event_type,
            },
        )
        return ServiceResult.success(cls.run(adapter, webhook_event))
