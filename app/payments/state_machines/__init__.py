"""
State machine enums for payment models.

This module defines the state enums used by payment models with django-fsm.
"""

from payments.state_machines.states import (
    SUCCESSFUL_OUTCOMES,
    PaymentMethod,
    PaymentProvider,
    PaymentStatus,
    WebhookOutcome,
)

__all__ = [
    "PaymentMethod",
    "PaymentProvider",
    "PaymentStatus",
    "SUCCESSFUL_OUTCOMES",
    "WebhookOutcome",
]
