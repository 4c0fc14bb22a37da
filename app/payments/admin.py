"""
Payment admin configuration.

Registers payment models with the Django admin. Transactions and webhook
events are read-only: they change only through webhook reconciliation.
Unsuccessful webhook events can be replayed from the changelist.
"""

from django.contrib import admin

from payments.models import GatewaySecret, PaymentTransaction, WebhookEvent

__all__ = [
    "GatewaySecretAdmin",
    "PaymentTransactionAdmin",
    "WebhookEventAdmin",
]


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    """
    Admin configuration for PaymentTransaction.

    Status is managed by the FSM and shown read-only.
    """

    list_display = [
        "id",
        "provider",
        "provider_payment_id",
        "method",
        "amount",
        "status",
        "paid_at",
        "created_at",
    ]
    list_filter = ["provider", "status", "method"]
    search_fields = ["id", "provider_payment_id", "provider_reference", "order__id"]
    readonly_fields = ["id", "status", "paid_at", "fees", "created_at", "updated_at"]
    raw_id_fields = ["order", "invoice"]
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "order", "invoice"),
            },
        ),
        (
            "Provider",
            {
                "fields": (
                    "provider",
                    "method",
                    "provider_payment_id",
                    "provider_reference",
                ),
            },
        ),
        (
            "Amounts",
            {
                "fields": ("amount", "currency", "fees"),
            },
        ),
        (
            "Status",
            {
                "fields": ("status", "paid_at"),
            },
        ),
        (
            "Payload",
            {
                "fields": ("raw_payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Webhook events are immutable once received; failed and unresolved
    deliveries can be replayed.
    """

    list_display = [
        "id",
        "provider",
        "event_type",
        "outcome",
        "success",
        "processed_at",
        "created_at",
    ]
    list_filter = ["provider", "outcome", "success", "created_at"]
    search_fields = ["id", "event_type", "error"]
    readonly_fields = [
        "id",
        "provider",
        "event_type",
        "payload",
        "outcome",
        "success",
        "error",
        "processed_at",
        "created_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["replay_events"]

    @admin.action(description="Replay selected unsuccessful webhook events")
    def replay_events(self, request, queryset):
        """Queue a replay for every selected event that can be replayed."""
        from payments.tasks import replay_webhook_event

        queued = 0
        for webhook_event in queryset.filter(success=False):
            if webhook_event.can_replay:
                replay_webhook_event.delay(str(webhook_event.id))
                queued += 1
        self.message_user(request, f"Queued {queued} webhook events for replay.")

    def has_add_permission(self, request) -> bool:
        """Webhook events are only created by deliveries."""
        return False


@admin.register(GatewaySecret)
class GatewaySecretAdmin(admin.ModelAdmin):
    """Admin configuration for GatewaySecret. Values are never listed."""

    list_display = ["provider", "key", "updated_at"]
    list_filter = ["provider"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["provider", "key"]
