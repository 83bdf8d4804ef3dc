"""Admin configuration for the commissions app."""
from django.contrib import admin

from .models import Commission


@admin.register(Commission)
class CommissionAdmin(admin.ModelAdmin):
    list_display = ("pk", "consultant", "type", "amount", "rate", "status", "created_at", "paid_at")
    list_filter = ("type", "status", "region")
    search_fields = ("consultant__email", "job__title", "payment_reference")
    list_select_related = ("consultant", "job")
    # Status moves through commissions.engine only.
    readonly_fields = (
        "status", "amount", "rate", "confirmed_at", "paid_at",
        "payment_reference", "notes", "created_at", "updated_at",
    )
