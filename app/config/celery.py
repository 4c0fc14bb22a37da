"""
Celery configuration for the payment reconciliation service.

Background work handled by Celery:
- Hourly subscription expiry sweep (billing.tasks.check_subscription_expiry)
- Replay of webhook deliveries that failed or found no transaction
  (payments.tasks.replay_webhook_event)

The periodic schedule is stored in the database (django-celery-beat) and
created by a data migration in the billing app. Tasks are auto-discovered
from all installed Django apps.

Usage:
    # Worker and scheduler
    celery -A config worker -l info
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
