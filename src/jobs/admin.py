"""Admin configuration for the jobs app."""
from django.contrib import admin

from .models import Job


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ("title", "company", "region", "service_package", "payment_status", "assigned_consultant")
    list_filter = ("service_package", "payment_status", "region")
    search_fields = ("title", "company__name", "category")
    list_select_related = ("company", "region", "assigned_consultant")
    readonly_fields = ("assigned_consultant", "assignment_source", "payment_completed_at", "created_at", "updated_at")
