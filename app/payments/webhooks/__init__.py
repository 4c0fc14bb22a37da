"""
Webhook handling for payment provider events.

A single view receives deliveries from every provider; reconciliation is
synchronous and the response status tells the provider whether to
redeliver.

Usage:
    # In urls.py
    from payments.webhooks.views import provider_webhook

    urlpatterns = [
        path("webhooks/<str:provider>/", provider_webhook, name="provider_webhook"),
    ]
"""
