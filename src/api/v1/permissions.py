"""Custom DRF permissions for the HRM8 admin API."""
from rest_framework.permissions import BasePermission


class IsPlatformOperator(BasePermission):
    """Allow access to authenticated staff users (HRM8 operators)."""

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_staff)


class IsSuperOperator(BasePermission):
    """Superusers only: attribution overrides and licensee termination."""

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_superuser)
