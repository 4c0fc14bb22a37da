"""
Root pytest configuration for the Django project.

Sets the environment the settings module needs before pytest-django loads
it, so the suite runs without a .env file, Redis or a Celery broker.
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import os

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DEBUG", "False")
os.environ.setdefault("SECURE_SSL_REDIRECT", "False")
# Empty REDIS_URL selects the in-process cache backend
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "True")
os.environ.setdefault("LOG_LEVEL", "WARNING")
