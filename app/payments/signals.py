"""
Django signals for payments app.

This module defines signal handlers for:
- CORS on webhook endpoints: providers (and browser-based test tools)
  may call them from any origin

Related files:
    - apps.py: Signal registration

Usage:
    Signals are automatically connected when app is ready.
    See apps.py for registration.
"""

from __future__ import annotations

from corsheaders.signals import check_request_enabled
from django.dispatch import receiver

WEBHOOK_PATH_PREFIX = "/api/v1/payments/webhooks/"


@receiver(check_request_enabled)
def allow_cors_for_webhooks(sender, request, **kwargs) -> bool:
    """Allow any origin on webhook paths; other paths follow CORS settings."""
    return request.path.startswith(WEBHOOK_PATH_PREFIX)
