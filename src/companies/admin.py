"""Admin configuration for the companies app."""
from django.contrib import admin

from .models import Company, Subscription


class SubscriptionInline(admin.TabularInline):
    model = Subscription
    extra = 0
    fields = ("plan", "price", "start_date", "end_date", "status")


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "region", "referred_by", "attribution_locked", "attribution_locked_at")
    list_filter = ("attribution_locked", "region")
    search_fields = ("name", "domain")
    list_select_related = ("region", "referred_by")
    # Attribution changes go through companies.attribution so they are audited.
    readonly_fields = ("referred_by", "attribution_locked", "attribution_locked_at", "created_at", "updated_at")
    inlines = [SubscriptionInline]


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ("company", "plan", "price", "start_date", "status")
    list_filter = ("status", "plan")
    search_fields = ("company__name",)
