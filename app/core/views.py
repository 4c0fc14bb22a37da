"""
Core views providing infrastructure endpoints.
"""

import logging

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for load balancers and container orchestration.

    Payment providers deliver webhooks to this service, so a failing
    database must take the instance out of rotation (503). A cache outage
    only degrades the provider-API circuit breakers and keeps 200.

    Example Response:
        {"status": "healthy", "database": "connected", "cache": "connected"}
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.exception("Health check: database unreachable")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        cache.set("health_check", "ok", timeout=1)
        health_status["cache"] = (
            "connected" if cache.get("health_check") == "ok" else "disconnected"
        )
    except Exception:
        logger.warning("Health check: cache unreachable", exc_info=True)
        health_status["cache"] = "disconnected"

    return JsonResponse(health_status, status=200 if is_healthy else 503)
