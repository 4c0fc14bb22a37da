"""
Owner billing admin configuration.

Audit log rows are append-only and read-only here.
"""

from django.contrib import admin

from billing.models import OwnerAuditLog, OwnerInvoice, OwnerSubscription


class OwnerInvoiceInline(admin.TabularInline):
    model = OwnerInvoice
    extra = 0
    fields = ["amount", "status", "gateway", "gateway_charge_id", "due_at", "paid_at"]
    readonly_fields = ["status", "paid_at"]


@admin.register(OwnerSubscription)
class OwnerSubscriptionAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "plan_id",
        "billing_cycle",
        "status",
        "current_period_end",
        "auto_renew",
        "gateway",
    ]
    list_filter = ["status", "billing_cycle", "auto_renew", "gateway"]
    search_fields = ["id", "plan_id"]
    readonly_fields = ["id", "status", "created_at", "updated_at"]
    inlines = [OwnerInvoiceInline]


@admin.register(OwnerInvoice)
class OwnerInvoiceAdmin(admin.ModelAdmin):
    list_display = ["id", "subscription", "amount", "status", "gateway", "due_at", "paid_at"]
    list_filter = ["status", "gateway"]
    search_fields = ["id", "gateway_charge_id"]
    readonly_fields = ["id", "status", "paid_at", "created_at", "updated_at"]


@admin.register(OwnerAuditLog)
class OwnerAuditLogAdmin(admin.ModelAdmin):
    list_display = ["action", "actor_type", "ip", "created_at"]
    list_filter = ["action", "actor_type"]
    readonly_fields = ["id", "action", "actor_type", "metadata", "ip", "created_at"]
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
