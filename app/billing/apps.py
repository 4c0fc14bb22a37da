"""
Billing app configuration.
"""

from django.apps import AppConfig


class BillingConfig(AppConfig):
    """Configuration for the owner billing application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "billing"
    verbose_name = "Owner Billing"
