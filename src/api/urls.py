"""Main API URL router for /api/v1/."""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from api.v1 import views as v1_views

router = DefaultRouter()
router.register(r'companies', v1_views.CompanyViewSet, basename='company')
router.register(r'consultants', v1_views.ConsultantViewSet, basename='consultant')
router.register(r'jobs', v1_views.JobViewSet, basename='job')
router.register(r'commissions', v1_views.CommissionViewSet, basename='commission')
router.register(r'regions', v1_views.RegionViewSet, basename='region')
router.register(r'licensees', v1_views.RegionalLicenseeViewSet, basename='licensee')
router.register(r'regional-revenues', v1_views.RegionalRevenueViewSet, basename='regional-revenue')
router.register(r'settlements', v1_views.SettlementViewSet, basename='settlement')
router.register(r'audit-logs', v1_views.AuditLogViewSet, basename='audit-log')

urlpatterns = [
    path('compliance/alerts/', v1_views.ComplianceAlertListView.as_view(), name='compliance-alerts'),
    path('compliance/summary/', v1_views.ComplianceSummaryView.as_view(), name='compliance-summary'),
    path('', include(router.urls)),
]
