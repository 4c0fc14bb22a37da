"""
Order admin configuration.

Payment fields are read-only here: they change only through webhook
reconciliation.
"""

from django.contrib import admin

from orders.models import Order, OrderEvent


class OrderEventInline(admin.TabularInline):
    model = OrderEvent
    extra = 0
    can_delete = False
    readonly_fields = ["event_type", "description", "actor_type", "metadata", "created_at"]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "customer_email",
        "total",
        "status",
        "payment_status",
        "payment_provider",
        "paid_at",
        "created_at",
    ]
    list_filter = ["status", "payment_status", "payment_provider"]
    search_fields = ["id", "customer_email"]
    readonly_fields = ["id", "payment_status", "paid_at", "created_at", "updated_at"]
    ordering = ["-created_at"]
    inlines = [OrderEventInline]
