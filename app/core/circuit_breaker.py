"""
Circuit breaker for outbound payment-provider API calls.

State lives in Django's cache backend (Redis in production) so every web
worker sees the same circuit. When a provider's API keeps failing, webhook
requests fail fast with a 500 and the provider redelivers later, instead
of each request waiting for its own timeout.

States:
    - CLOSED: Normal operation, all requests pass through
    - OPEN: Provider is failing, requests fail fast
    - HALF_OPEN: One probe request is let through to test recovery

Usage:
    from core.circuit_breaker import CircuitBreaker

    mercadopago_circuit = CircuitBreaker(
        name="mercadopago-api",
        failure_threshold=5,
        recovery_timeout=60,
        failure_exceptions=(requests.RequestException,),
    )

    with mercadopago_circuit.call():
        response = requests.get(url, timeout=10)

Only exceptions listed in failure_exceptions count against the circuit;
anything else raised inside call() propagates without being recorded.
If the cache is unavailable the circuit behaves as closed.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING

from django.core.cache import cache

if TYPE_CHECKING:
    from collections.abc import Generator

logger = logging.getLogger(__name__)

KEY_TTL_SECONDS = 3600


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """
    Raised by CircuitBreaker.call() when the circuit is open.

    Signals that the provider is considered unavailable, not that an
    actual call failed.
    """


class CircuitBreaker:
    """
    Cache-backed circuit breaker shared by all workers.

    Attributes:
        name: Circuit identifier, also the cache key prefix
        failure_threshold: Consecutive failures that open the circuit
        recovery_timeout: Seconds an open circuit waits before a probe
        failure_exceptions: Exception types recorded as failures
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        failure_exceptions: tuple[type[BaseException], ...] = (Exception,),
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_exceptions = failure_exceptions

        self._keys = {
            "state": f"circuit:{name}:state",
            "failures": f"circuit:{name}:failures",
            "opened_at": f"circuit:{name}:opened_at",
            "probing": f"circuit:{name}:probing",
        }

    def is_available(self) -> bool:
        """
        Whether a call may go through now.

        An open circuit past its recovery timeout moves to half-open and
        lets exactly one probe through; further calls wait for the probe's
        result.
        """
        try:
            state = self.state

            if state == CircuitState.CLOSED:
                return True

            if state == CircuitState.OPEN:
                opened_at = cache.get(self._keys["opened_at"])
                if opened_at is None or time.time() - opened_at < self.recovery_timeout:
                    return False
                self._set_state(CircuitState.HALF_OPEN)
                cache.delete(self._keys["probing"])
                logger.info("Circuit half-open, sending probe", extra={"circuit": self.name})

            # Half-open: cache.add succeeds for the first caller only
            return cache.add(self._keys["probing"], 1, timeout=KEY_TTL_SECONDS)
        except Exception as e:
            logger.warning(
                f"Circuit breaker cache error, failing open: {e}",
                extra={"circuit": self.name},
            )
            return True

    def record_success(self) -> None:
        try:
            if self.state == CircuitState.HALF_OPEN:
                self._set_state(CircuitState.CLOSED)
                logger.info("Circuit closed after successful probe", extra={"circuit": self.name})
            cache.set(self._keys["failures"], 0, timeout=KEY_TTL_SECONDS)
        except Exception as e:
            logger.warning(
                f"Circuit breaker failed to record success: {e}",
                extra={"circuit": self.name},
            )

    def record_failure(self) -> None:
        """Count a failure; open at the threshold, or at once after a failed probe."""
        try:
            if self.state == CircuitState.HALF_OPEN:
                self._open()
                logger.warning("Circuit reopened after failed probe", extra={"circuit": self.name})
                return

            failures = self._increment_failures()
            if failures >= self.failure_threshold:
                self._open()
                logger.warning(
                    f"Circuit opened after {failures} failures",
                    extra={"circuit": self.name, "failure_count": failures},
                )
        except Exception as e:
            logger.warning(
                f"Circuit breaker failed to record failure: {e}",
                extra={"circuit": self.name},
            )

    @contextmanager
    def call(self) -> Generator[None, None, None]:
        """
        Guard one outbound call.

        Raises:
            CircuitOpenError: The circuit is open; the body is not run
        """
        if not self.is_available():
            raise CircuitOpenError(f"Circuit '{self.name}' is open")

        try:
            yield
        except self.failure_exceptions:
            self.record_failure()
            raise
        self.record_success()

    def reset(self) -> None:
        """Close the circuit and clear its counters."""
        cache.delete_many(list(self._keys.values()))

    def get_status(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": cache.get(self._keys["failures"], 0),
            "failure_threshold": self.failure_threshold,
        }

    @property
    def state(self) -> CircuitState:
        try:
            return CircuitState(cache.get(self._keys["state"], CircuitState.CLOSED.value))
        except ValueError:
            return CircuitState.CLOSED

    def _set_state(self, state: CircuitState) -> None:
        cache.set(self._keys["state"], state.value, timeout=KEY_TTL_SECONDS)

    def _increment_failures(self) -> int:
        try:
            return cache.incr(self._keys["failures"])
        except ValueError:
            cache.set(self._keys["failures"], 1, timeout=KEY_TTL_SECONDS)
            return 1

    def _open(self) -> None:
        self._set_state(CircuitState.OPEN)
        cache.set(self._keys["opened_at"], time.time(), timeout=KEY_TTL_SECONDS)

    def __repr__(self) -> str:
        return f"CircuitBreaker(name={self.name!r}, state={self.state.value})"
