"""
Mercado Pago API adapter.

Mercado Pago webhooks only carry the payment id, so the payment status is
read from the payments API on every delivery. The call has a request
timeout and goes through a cache-backed circuit breaker; any failure
surfaces as ProviderLookupError and Mercado Pago redelivers later.

Configuration (via settings):
- MERCADOPAGO_API_BASE_URL: API root (default: https://api.mercadopago.com)
- MERCADOPAGO_ACCESS_TOKEN: Fallback when no GatewaySecret is stored
- MERCADOPAGO_API_TIMEOUT_SECONDS: Request timeout (default: 10)

Usage:
    from payments.adapters import MercadoPagoAdapter

    payment = MercadoPagoAdapter.fetch_payment("1234567890")
    payment["status"]  # "approved"
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests
from django.conf import settings

from core.circuit_breaker import CircuitBreaker, CircuitOpenError

from payments.exceptions import ProviderLookupError
from payments.models import GatewaySecret
from payments.state_machines import PaymentProvider

mercadopago_circuit = CircuitBreaker(
    name="mercadopago-api",
    failure_threshold=5,
    recovery_timeout=60,
    failure_exceptions=(requests.RequestException,),
)


class MercadoPagoAdapter:
    """
    Read-only client for the Mercado Pago payments API.

    All methods are class methods - no instance state is maintained.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @staticmethod
    def get_access_token() -> str | None:
        """Stored access token, falling back to settings."""
        return GatewaySecret.get_value(
            PaymentProvider.MERCADOPAGO, GatewaySecret.ACCESS_TOKEN
        ) or getattr(settings, "MERCADOPAGO_ACCESS_TOKEN", "") or None

    @classmethod
    def fetch_payment(cls, payment_id: str) -> dict[str, Any]:
        """
        Fetch one payment from GET /v1/payments/{id}.

        Args:
            payment_id: Mercado Pago payment id from the webhook's data.id

        Returns:
            Payment resource as a dict

        Raises:
            ProviderLookupError: Missing token, open circuit, timeout,
                non-2xx response or a body that is not JSON
        """
        logger = cls.get_logger()
        log_context = {"provider": PaymentProvider.MERCADOPAGO, "payment_id": payment_id}

        access_token = cls.get_access_token()
        if not access_token:
            logger.error("Mercado Pago access token not configured", extra=log_context)
            raise ProviderLookupError(
                "Mercado Pago access token not configured",
                error_code="MERCADOPAGO_TOKEN_MISSING",
                details=log_context,
            )

        base_url = getattr(settings, "MERCADOPAGO_API_BASE_URL", "https://api.mercadopago.com")
        url = f"{base_url.rstrip('/')}/v1/payments/{payment_id}"
        timeout = getattr(settings, "MERCADOPAGO_API_TIMEOUT_SECONDS", 10)

        start_time = time.time()
        try:
            # 4xx answers leave the circuit closed
            with mercadopago_circuit.call():
                response = requests.get(
                    url,
                    headers={"Authorization": f"Bearer {access_token}"},
                    timeout=timeout,
                )
                if response.status_code >= 500:
                    response.raise_for_status()
        except CircuitOpenError as e:
            logger.warning("Mercado Pago circuit open, failing fast", extra=log_context)
            raise ProviderLookupError(
                "Mercado Pago API unavailable (circuit open)",
                error_code="MERCADOPAGO_UNAVAILABLE",
                details=log_context,
            ) from e
        except requests.RequestException as e:
            logger.error(
                "Mercado Pago payment lookup failed",
                extra={**log_context, "error": str(e)},
                exc_info=True,
            )
            raise ProviderLookupError(
                f"Mercado Pago payment lookup failed: {e}",
                details=log_context,
            ) from e

        duration_ms = (time.time() - start_time) * 1000

        if response.status_code >= 400:
            logger.error(
                "Mercado Pago rejected payment lookup",
                extra={
                    **log_context,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            raise ProviderLookupError(
                f"Mercado Pago returned HTTP {response.status_code}",
                details={**log_context, "status_code": response.status_code},
            )

        try:
            payment = response.json()
        except ValueError as e:
            raise ProviderLookupError(
                "Mercado Pago returned a non-JSON body",
                details=log_context,
            ) from e

        if not isinstance(payment, dict):
            raise ProviderLookupError(
                "Mercado Pago returned an unexpected body",
                details=log_context,
            )

        logger.info(
            "Mercado Pago payment fetched",
            extra={
                **log_context,
                "status": payment.get("status"),
                "duration_ms": duration_ms,
            },
        )
        return payment
