from django.contrib import admin
from .models import Order, ReconciliationIssue

@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_id", "payment_method", "payment_status", "amount", "admin_commission", "seller_amount",
                    "received_successfully", "created_at")
    search_fields = ("order_id", "request_id", "transaction_id")
    list_filter = ("payment_method", "payment_status", "received_successfully", "created_at")
    readonly_fields = ("order_id", "admin_commission", "seller_amount", "notes", "completed_at", "created_at", "updated_at")

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ReconciliationIssue)
class ReconciliationIssueAdmin(admin.ModelAdmin):
    list_display = ("order", "kind", "resolved", "created_at")
    list_filter = ("kind", "resolved")
    search_fields = ("order__order_id",)
