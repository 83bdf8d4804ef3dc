"""Django admin for core models."""
from django.contrib import admin

from core.models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("performed_at", "entity_type", "entity_id", "action", "performed_by")
    list_filter = ("entity_type", "action")
    search_fields = ("entity_id", "performed_by")
    readonly_fields = ("entity_type", "entity_id", "action", "old_value", "new_value", "performed_by", "performed_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
