"""
URL configuration for the payments app.

Routes:
    - POST /webhooks/<provider>/ - Provider webhook endpoint
      (asaas, efi, mercadopago, pagseguro, sicredi, stripe)

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import path

from payments.webhooks.views import provider_webhook

app_name = "payments"

urlpatterns = [
    path("webhooks/<str:provider>/", provider_webhook, name="provider_webhook"),
]
