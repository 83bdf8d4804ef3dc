"""Admin configuration for the regions app."""
from django.contrib import admin

from .models import Region, RegionalLicensee, RegionalRevenue, Settlement


@admin.register(RegionalLicensee)
class RegionalLicenseeAdmin(admin.ModelAdmin):
    list_display = ("name", "status", "revenue_share_percent", "agreement_start_date", "agreement_end_date")
    list_filter = ("status",)
    search_fields = ("name", "legal_entity_name", "email")


@admin.register(Region)
class RegionAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "country", "licensee", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "code")
    list_select_related = ("licensee",)


@admin.register(RegionalRevenue)
class RegionalRevenueAdmin(admin.ModelAdmin):
    list_display = ("region", "period_start", "period_end", "total_revenue", "licensee_share", "hrm8_share", "status")
    list_filter = ("status", "region")
    date_hierarchy = "period_start"
    readonly_fields = ("licensee_share", "hrm8_share", "paid_at", "settlement", "created_at", "updated_at")


@admin.register(Settlement)
class SettlementAdmin(admin.ModelAdmin):
    list_display = ("licensee", "period_start", "period_end", "licensee_share", "status", "generated_at", "paid_at")
    list_filter = ("status",)
    readonly_fields = ("generated_at", "paid_at", "created_at", "updated_at")
