"""Admin configuration for the consultants app."""
from django.contrib import admin

from .models import Consultant, ConsultantJobAssignment


class ConsultantJobAssignmentInline(admin.TabularInline):
    model = ConsultantJobAssignment
    extra = 0
    fields = ("job", "status", "assignment_source", "pipeline_stage", "pipeline_progress", "assigned_at")
    readonly_fields = ("job", "status", "assignment_source", "assigned_at")
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Consultant)
class ConsultantAdmin(admin.ModelAdmin):
    list_display = ("__str__", "email", "role", "status", "availability", "current_jobs", "max_jobs", "region")
    list_filter = ("role", "status", "availability", "region")
    search_fields = ("first_name", "last_name", "email")
    # Counter is owned by consultants.services.
    readonly_fields = ("current_jobs", "created_at", "updated_at")
    inlines = [ConsultantJobAssignmentInline]


@admin.register(ConsultantJobAssignment)
class ConsultantJobAssignmentAdmin(admin.ModelAdmin):
    list_display = ("consultant", "job", "status", "assignment_source", "assigned_at")
    list_filter = ("status", "assignment_source")
    list_select_related = ("consultant", "job")
