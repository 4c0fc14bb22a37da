"""
Webhook endpoint view for payment providers.

One view serves every provider; the provider tag in the URL selects the
adapter. The view:
1. Answers CORS preflight requests
2. Parses the JSON body
3. Logs the delivery as a WebhookEvent before any business logic
4. Hands the delivery to the reconciliation engine
5. Returns the outcome as JSON

Processing is synchronous: the status code tells the provider whether to
redeliver (non-2xx) or not (2xx).

Usage:
    # In urls.py
    from payments.webhooks.views import provider_webhook

    urlpatterns = [
        path("webhooks/<str:provider>/", provider_webhook, name="provider_webhook"),
    ]
"""

from __future__ import annotations

import json
import logging
from functools import wraps

from django.conf import settings
from django.db import DatabaseError
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from payments.models import WebhookEvent
from payments.providers import get_adapter
from payments.services.reconciliation_service import ReconciliationService
from payments.state_machines import WebhookOutcome

logger = logging.getLogger(__name__)

MAX_LOGGED_BODY_CHARS = 10_000


def allow_any_origin(view_func):
    """
    Add permissive CORS headers to every response of a webhook view.

    CorsMiddleware only answers requests that carry an Origin header;
    server-to-server provider calls get the same headers from here.
    When CorsMiddleware runs, its values take precedence.
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        response = view_func(request, *args, **kwargs)
        response.setdefault("Access-Control-Allow-Origin", "*")
        response.setdefault("Access-Control-Allow-Methods", "POST, OPTIONS")
        response.setdefault(
            "Access-Control-Allow-Headers", ", ".join(settings.CORS_ALLOW_HEADERS)
        )
        return response

    return wrapper


@csrf_exempt
@allow_any_origin
@require_http_methods(["POST", "OPTIONS"])
def provider_webhook(request: HttpRequest, provider: str) -> JsonResponse:
    """
    Receive a payment-provider webhook.

    Security:
    - CSRF exemption required for external webhooks
    - Stripe deliveries are signature-checked when STRIPE_WEBHOOK_SECRET is set
    - Sicredi deliveries must carry the stored webhook token when one exists

    Returns:
        JsonResponse with status:
        - 200: Reconciled, duplicate or ignored event
        - 400: Body is not a JSON object or lacks a correlation field
        - 401: Signature or token rejected
        - 404: Unknown provider or no matching transaction
        - 500: Internal or provider API failure (the provider redelivers)
    """
    if request.method == "OPTIONS":
        return JsonResponse({})

    adapter = get_adapter(provider)
    if adapter is None:
        logger.warning("Webhook for unknown provider", extra={"provider": provider})
        return JsonResponse(
            {"success": False, "error": f"Unknown provider: {provider}"},
            status=404,
        )

    try:
        payload = json.loads(request.body)
    except ValueError:
        payload = None

    try:
        if not isinstance(payload, dict):
            return _reject_malformed(request, provider)

        webhook_event = WebhookEvent.objects.create(
            provider=provider,
            event_type=adapter.event_type(payload),
            payload=payload,
        )
    except DatabaseError:
        logger.exception("Failed to log webhook event", extra={"provider": provider})
        return JsonResponse(
            {"success": False, "outcome": WebhookOutcome.FAILED, "error": "Internal error"},
            status=500,
        )

    logger.info(
        f"Received {provider} webhook: {webhook_event.event_type or 'unknown'}",
        extra={
            "provider": provider,
            "event_type": webhook_event.event_type,
            "webhook_event_id": str(webhook_event.id),
        },
    )

    result = ReconciliationService.run(adapter, webhook_event, request=request)
    return JsonResponse(result.to_response(), status=result.http_status)


def _reject_malformed(request: HttpRequest, provider: str) -> JsonResponse:
    """Log a body that is not a JSON object and answer 400."""
    error = "Request body must be a JSON object"
    body = request.body.decode("utf-8", errors="replace")[:MAX_LOGGED_BODY_CHARS]

    webhook_event = WebhookEvent(provider=provider, payload={"raw_body": body})
    webhook_event.mark_outcome(WebhookOutcome.REJECTED, error=error)
    webhook_event.save()

    logger.warning(
        "Webhook rejected: malformed body",
        extra={"provider": provider, "webhook_event_id": str(webhook_event.id)},
    )
    return JsonResponse(
        {
            "success": False,
            "outcome": WebhookOutcome.REJECTED,
            "provider": provider,
            "error": error,
        },
        status=400,
    )
