"""
Payments app configuration.

This app provides payment webhook infrastructure including:
- Payment transactions and their status machine
- One webhook endpoint per provider, backed by one reconciliation engine
- Webhook event log and manual replay
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        """
        Import signals when the app is ready.

        This connects the CORS receiver for webhook endpoints.
        """
        from payments import signals  # noqa: F401
