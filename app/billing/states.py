"""
State enums for owner billing models.

Owner subscriptions are what store operators pay the platform. They are
managed by django-fsm; invoices and audit rows use plain TextChoices.

State Machines Overview:

OwnerSubscription:
    trialing | active → past_due (period ended, auto-renew pending)
    trialing | active | past_due → suspended (period ended, no renewal)
    any → active (invoice paid)

OwnerInvoice:
    pending | overdue | canceled → paid
"""

from django.db import models


class SubscriptionStatus(models.TextChoices):
    TRIALING = "trialing", "Trialing"
    ACTIVE = "active", "Active"
    PAST_DUE = "past_due", "Past Due"
    SUSPENDED = "suspended", "Suspended"
    CANCELED = "canceled", "Canceled"


# Statuses the expiry sweep looks at.
SWEEPABLE_STATUSES = (
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.TRIALING,
    SubscriptionStatus.PAST_DUE,
)


class BillingCycle(models.TextChoices):
    """
    Renewal period of an owner subscription.

    The period end after a confirmed payment is always now + days.
    """

    MONTHLY = "monthly", "Monthly"
    SEMIANNUAL = "semiannual", "Semiannual"
    ANNUAL = "annual", "Annual"

    @classmethod
    def days_for(cls, cycle: str | None) -> int:
        """Length of a cycle in days; unknown or empty cycles count as monthly."""
        return CYCLE_DAYS.get(cycle, CYCLE_DAYS[cls.MONTHLY])


CYCLE_DAYS = {
    BillingCycle.MONTHLY: 30,
    BillingCycle.SEMIANNUAL: 180,
    BillingCycle.ANNUAL: 365,
}


class InvoiceStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    CANCELED = "canceled", "Canceled"
    OVERDUE = "overdue", "Overdue"


class AuditActorType(models.TextChoices):
    SYSTEM = "system", "System"
    WEBHOOK = "webhook", "Webhook"
    OWNER = "owner", "Owner"


class AuditAction(models.TextChoices):
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED", "Payment Received"
    SUBSCRIPTION_PAST_DUE = "SUBSCRIPTION_PAST_DUE", "Subscription Past Due"
    SUBSCRIPTION_SUSPENDED_AUTO = (
        "SUBSCRIPTION_SUSPENDED_AUTO",
        "Subscription Suspended Automatically",
    )
