"""
Pytest configuration shared by every app's tests.

Provides test-wide settings overrides and auto-marks tests by file name.
"""

import pytest
from django.core.cache import cache


def pytest_configure():
    """Adjust Django settings before tests run."""
    from django.conf import settings

    # Provider credentials from a developer's .env must not leak into tests
    settings.STRIPE_WEBHOOK_SECRET = ""
    settings.SICREDI_WEBHOOK_TOKEN = ""
    settings.MERCADOPAGO_ACCESS_TOKEN = ""


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_providers.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_webhooks.py",
        "test_reconciliation_service.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_providers.py",
        "test_adapters.py",
        "test_circuit_breaker.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def clear_circuit_state():
    """Circuit breaker state lives in the cache; start every test closed."""
    cache.clear()
    yield
    cache.clear()
