"""Views for the HRM8 admin API v1.

Every mutation goes through the service layer so it is locked, audited and
logged the same way as the scheduled jobs.  Business-rule rejections come
back as ``{"detail": ..., "code": ...}`` with a 400 (409 for a lock
conflict).
"""
import logging

from django.db.models import ProtectedError, Q
from django.shortcuts import get_object_or_404
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import IsPlatformOperator, IsSuperOperator
from api.v1.serializers import (
    AssignAgentSerializer,
    AssignJobSerializer,
    AuditLogSerializer,
    BatchPaymentSerializer,
    CancelSerializer,
    CommissionSerializer,
    CompanySerializer,
    ComplianceAlertSerializer,
    ConsultantJobAssignmentSerializer,
    ConsultantSerializer,
    GenerateSettlementSerializer,
    JobSerializer,
    LicenseeActionSerializer,
    OverrideAttributionSerializer,
    PaymentReferenceSerializer,
    RegionalLicenseeSerializer,
    RegionalRevenueSerializer,
    RegionSerializer,
    RevenueInputSerializer,
    SettlementSerializer,
)
from commissions.engine import CommissionEngine
from commissions.filters import CommissionFilter
from commissions.models import Commission
from companies.attribution import AttributionLockedError, AttributionService
from companies.models import Company
from compliance.services import ComplianceAlertService
from consultants.matching import AutoAssignmentService
from consultants.models import Consultant
from consultants.services import JobAllocationService
from core.exceptions import InvalidTransitionError
from core.models import AuditLog
from core.notifications import Notifier
from core.periods import parse_period
from jobs.models import Job
from regions.exceptions import RevenuePeriodOverlapError
from regions.filters import RegionalRevenueFilter, SettlementFilter
from regions.ledger import RegionalRevenueLedger, RevenuePatch
from regions.models import Region, RegionalLicensee, RegionalRevenue, Settlement
from regions.services import LicenseePatch, LicenseeService

logger = logging.getLogger("hrm8")


def _rejected(reason, code="rejected", http_status=status.HTTP_400_BAD_REQUEST):
    return Response({"detail": reason, "code": code}, status=http_status)


# ---------------------------------------------------------------------------
# Companies / attribution
# ---------------------------------------------------------------------------

class CompanyViewSet(viewsets.ReadOnlyModelViewSet):
    """Companies with their attribution state.

    - assign-agent: credit an agent (blocked by a live lock held by someone else)
    - lock-attribution: start the 12-month protection window
    - override-attribution: audited transfer ignoring the lock (superusers)
    """

    serializer_class = CompanySerializer
    queryset = Company.objects.select_related("region", "referred_by")
    filterset_fields = ["region", "referred_by", "attribution_locked"]
    search_fields = ["name", "domain"]
    ordering_fields = ["name", "created_at", "attribution_locked_at"]
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action == "override_attribution":
            return [IsSuperOperator()]
        return [IsPlatformOperator()]

    def _service(self):
        return AttributionService(notifier=Notifier())

    def _respond(self, result, company):
        if not result.success:
            http_status = status.HTTP_409_CONFLICT if isinstance(result.error, AttributionLockedError) else status.HTTP_400_BAD_REQUEST
            return _rejected(result.reason, type(result.error).__name__, http_status)
        company.refresh_from_db()
        return Response(CompanySerializer(company).data)

    @action(detail=True, methods=["get"])
    def attribution(self, request, pk=None):
        company = self.get_object()
        snapshot = self._service().get_attribution(company.pk)
        return Response({
            "company_id": snapshot.company_id,
            "referred_by": snapshot.referred_by_id,
            "attribution_locked": snapshot.attribution_locked,
            "attribution_locked_at": snapshot.attribution_locked_at,
            "lock_expires_at": snapshot.lock_expires_at,
            "is_locked": snapshot.is_locked,
        })

    @action(detail=True, methods=["post"], url_path="assign-agent")
    def assign_agent(self, request, pk=None):
        company = self.get_object()
        ser = AssignAgentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = self._service().assign_agent(company.pk, ser.validated_data["agent"], performed_by=request.user)
        return self._respond(result, company)

    @action(detail=True, methods=["post"], url_path="lock-attribution")
    def lock_attribution(self, request, pk=None):
        company = self.get_object()
        result = self._service().lock_attribution(company.pk, performed_by=request.user)
        return self._respond(result, company)

    @action(detail=True, methods=["post"], url_path="override-attribution")
    def override_attribution(self, request, pk=None):
        company = self.get_object()
        ser = OverrideAttributionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = self._service().override_attribution(
            company.pk,
            ser.validated_data["agent"],
            performed_by=request.user,
            reason=ser.validated_data["reason"],
        )
        return self._respond(result, company)

    @action(detail=True, methods=["get"], url_path="attribution-history")
    def attribution_history(self, request, pk=None):
        company = self.get_object()
        entries = self._service().get_attribution_history(company.pk)
        return Response(AuditLogSerializer(entries, many=True).data)


# ---------------------------------------------------------------------------
# Consultants / jobs
# ---------------------------------------------------------------------------

class ConsultantViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = ConsultantSerializer
    queryset = Consultant.objects.select_related("region")
    permission_classes = [IsPlatformOperator]
    filterset_fields = ["region", "role", "status", "availability"]
    search_fields = ["first_name", "last_name", "email"]
    ordering_fields = ["last_name", "current_jobs", "success_rate"]
    pagination_class = StandardResultsSetPagination


class JobViewSet(viewsets.ReadOnlyModelViewSet):
    """Jobs with their consultant allocation.

    - best-consultant: ranked match with the contributing factors
    - eligibility: gate check of one consultant (``?consultant=<id>``)
    - auto-assign / assign / unassign
    """

    serializer_class = JobSerializer
    queryset = Job.objects.select_related("company", "region", "assigned_consultant")
    permission_classes = [IsPlatformOperator]
    filterset_fields = ["region", "company", "service_package", "payment_status", "assigned_consultant"]
    search_fields = ["title", "category", "company__name"]
    ordering_fields = ["created_at", "title"]
    pagination_class = StandardResultsSetPagination

    @action(detail=True, methods=["get"], url_path="best-consultant")
    def best_consultant(self, request, pk=None):
        job = self.get_object()
        match = AutoAssignmentService().find_best_consultant_for_job(job.pk)
        return Response({"consultant_id": match.consultant_id, "score": match.score, "reason": match.reason})

    @action(detail=True, methods=["get"])
    def eligibility(self, request, pk=None):
        job = self.get_object()
        consultant_id = request.query_params.get("consultant")
        if not consultant_id:
            return _rejected("Query parameter 'consultant' is required.", "missing_consultant")
        result = AutoAssignmentService().check_consultant_eligibility(consultant_id, job.pk)
        return Response({"eligible": result.eligible, "reason": result.reason})

    @action(detail=True, methods=["get"])
    def assignments(self, request, pk=None):
        job = self.get_object()
        return Response(ConsultantJobAssignmentSerializer(job.consultant_assignments.all(), many=True).data)

    @action(detail=True, methods=["post"], url_path="auto-assign")
    def auto_assign(self, request, pk=None):
        job = self.get_object()
        result = JobAllocationService(notifier=Notifier()).auto_assign_job(job.pk)
        if not result.success:
            return _rejected(result.error, "no_match")
        job.refresh_from_db()
        return Response(JobSerializer(job).data)

    @action(detail=True, methods=["post"])
    def assign(self, request, pk=None):
        job = self.get_object()
        ser = AssignJobSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        consultant = get_object_or_404(Consultant, pk=ser.validated_data["consultant"])
        result = JobAllocationService().assign_job_to_consultant(job, consultant, assigned_by=request.user)
        if not result.success:
            return _rejected(result.error, "assignment_rejected")
        job.refresh_from_db()
        return Response(JobSerializer(job).data)

    @action(detail=True, methods=["post"])
    def unassign(self, request, pk=None):
        job = self.get_object()
        JobAllocationService().unassign_job(job, performed_by=request.user)
        job.refresh_from_db()
        return Response(JobSerializer(job).data)


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------

class CommissionViewSet(viewsets.ReadOnlyModelViewSet):
    """Commissions, filterable by consultant/job/region/type/status/date."""

    serializer_class = CommissionSerializer
    queryset = Commission.objects.select_related("consultant", "job", "region")
    permission_classes = [IsPlatformOperator]
    filterset_class = CommissionFilter
    ordering_fields = ["created_at", "amount", "status"]
    pagination_class = StandardResultsSetPagination

    def _engine(self):
        return CommissionEngine(notifier=Notifier())

    def _transition(self, request, func, *args, **kwargs):
        commission = self.get_object()
        try:
            commission = func(commission, *args, performed_by=request.user, **kwargs)
        except InvalidTransitionError as e:
            return _rejected(str(e), "invalid_transition")
        return Response(CommissionSerializer(commission).data)

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):
        return self._transition(request, self._engine().confirm_commission)

    @action(detail=True, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request, pk=None):
        ser = PaymentReferenceSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return self._transition(
            request, self._engine().mark_commission_paid, ser.validated_data["payment_reference"],
        )

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        ser = CancelSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return self._transition(request, self._engine().cancel_commission, ser.validated_data["reason"])

    @action(detail=False, methods=["post"], url_path="process-payments")
    def process_payments(self, request):
        ser = BatchPaymentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = self._engine().process_payments(
            ser.validated_data["commission_ids"],
            ser.validated_data["payment_reference"],
            performed_by=request.user,
        )
        return Response({"success": result.success, "processed": result.processed, "errors": result.errors})

    @action(detail=False, methods=["post"])
    def expire(self, request):
        result = CommissionEngine().expire_stale_commissions()
        return Response(result.as_dict())


# ---------------------------------------------------------------------------
# Regions / licensees / revenue
# ---------------------------------------------------------------------------

class RegionViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = RegionSerializer
    queryset = Region.objects.select_related("licensee")
    permission_classes = [IsPlatformOperator]
    filterset_fields = ["licensee", "is_active"]
    search_fields = ["name", "code"]
    pagination_class = StandardResultsSetPagination


class RegionalLicenseeViewSet(
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.ReadOnlyModelViewSet,
):
    """Licensees. Status changes only through suspend/terminate/reactivate."""

    serializer_class = RegionalLicenseeSerializer
    queryset = RegionalLicensee.objects.all()
    filterset_fields = ["status"]
    search_fields = ["name", "legal_entity_name", "email"]
    ordering_fields = ["name", "agreement_end_date"]
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action == "terminate":
            return [IsSuperOperator()]
        return [IsPlatformOperator()]

    def perform_create(self, serializer):
        data = serializer.validated_data
        serializer.instance = LicenseeService().create_licensee(performed_by=self.request.user, **data)

    def perform_update(self, serializer):
        patch = LicenseePatch(**serializer.validated_data)
        serializer.instance = LicenseeService().update_licensee(
            serializer.instance, patch, performed_by=self.request.user,
        )

    def destroy(self, request, *args, **kwargs):
        licensee = self.get_object()
        try:
            LicenseeService().delete_licensee(licensee, performed_by=request.user)
        except ProtectedError:
            return _rejected(
                "Licensee has revenue or settlements; terminate it instead.", "protected",
                status.HTTP_409_CONFLICT,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)

    def _transition(self, request, func, with_reason=True):
        licensee = self.get_object()
        kwargs = {"performed_by": request.user}
        if with_reason:
            ser = LicenseeActionSerializer(data=request.data)
            ser.is_valid(raise_exception=True)
            kwargs["reason"] = ser.validated_data["reason"]
        try:
            licensee = func(licensee, **kwargs)
        except InvalidTransitionError as e:
            return _rejected(str(e), "invalid_transition")
        return Response(RegionalLicenseeSerializer(licensee).data)

    @action(detail=True, methods=["post"])
    def suspend(self, request, pk=None):
        return self._transition(request, LicenseeService().suspend_licensee)

    @action(detail=True, methods=["post"])
    def terminate(self, request, pk=None):
        return self._transition(request, LicenseeService().terminate_licensee)

    @action(detail=True, methods=["post"])
    def reactivate(self, request, pk=None):
        return self._transition(request, LicenseeService().reactivate_licensee, with_reason=False)


class RegionalRevenueViewSet(
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.ReadOnlyModelViewSet,
):
    """Regional revenue records.

    Filter with ``region``, ``licensee``, ``status`` (repeatable) and the
    period overlap pair ``start`` / ``end``.
    """

    serializer_class = RegionalRevenueSerializer
    queryset = RegionalRevenue.objects.select_related("region", "licensee")
    permission_classes = [IsPlatformOperator]
    filterset_class = RegionalRevenueFilter
    ordering_fields = ["period_start", "total_revenue", "status"]
    pagination_class = StandardResultsSetPagination

    def create(self, request, *args, **kwargs):
        ser = RevenueInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)
        try:
            revenue = RegionalRevenueLedger().create_revenue(
                data.pop("region"),
                data.pop("period_start"),
                data.pop("period_end"),
                data.pop("total_revenue"),
                performed_by=request.user,
                **data,
            )
        except (RevenuePeriodOverlapError, ValueError) as e:
            return _rejected(str(e), "invalid_revenue")
        return Response(RegionalRevenueSerializer(revenue).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        revenue = self.get_object()
        ser = RevenueInputSerializer(revenue, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)
        data.pop("region", None)
        try:
            revenue = RegionalRevenueLedger().update_revenue(revenue, RevenuePatch(**data), performed_by=request.user)
        except ValueError as e:
            return _rejected(str(e), "invalid_revenue")
        return Response(RegionalRevenueSerializer(revenue).data)

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):
        revenue = self.get_object()
        try:
            revenue = RegionalRevenueLedger().confirm(revenue, performed_by=request.user)
        except InvalidTransitionError as e:
            return _rejected(str(e), "invalid_transition")
        return Response(RegionalRevenueSerializer(revenue).data)

    @action(detail=True, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request, pk=None):
        revenue = self.get_object()
        try:
            revenue = RegionalRevenueLedger().mark_paid(revenue, performed_by=request.user)
        except InvalidTransitionError as e:
            return _rejected(str(e), "invalid_transition")
        return Response(RegionalRevenueSerializer(revenue).data)


class SettlementViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = SettlementSerializer
    queryset = Settlement.objects.select_related("licensee")
    permission_classes = [IsPlatformOperator]
    filterset_class = SettlementFilter
    ordering_fields = ["generated_at", "period_end"]
    pagination_class = StandardResultsSetPagination

    @action(detail=False, methods=["post"])
    def generate(self, request):
        ser = GenerateSettlementSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        month = parse_period(ser.validated_data["month"])
        result = RegionalRevenueLedger().generate_settlement(
            ser.validated_data["licensee"], month, performed_by=request.user,
        )
        if not result.success:
            return _rejected(result.error, "nothing_to_settle")
        return Response(SettlementSerializer(result.settlement).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request, pk=None):
        settlement = self.get_object()
        ser = PaymentReferenceSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            settlement = RegionalRevenueLedger(notifier=Notifier()).mark_settlement_paid(
                settlement, ser.validated_data["payment_reference"], performed_by=request.user,
            )
        except InvalidTransitionError as e:
            return _rejected(str(e), "invalid_transition")
        return Response(SettlementSerializer(settlement).data)


# ---------------------------------------------------------------------------
# Compliance / audit
# ---------------------------------------------------------------------------

class ComplianceAlertListView(APIView):
    """Alerts computed at request time, most severe first."""

    permission_classes = [IsPlatformOperator]

    def get(self, request):
        alerts = ComplianceAlertService().get_all_alerts()
        severity = request.query_params.get("severity")
        if severity:
            alerts = [a for a in alerts if a.severity == severity.upper()]
        return Response({"count": len(alerts), "results": ComplianceAlertSerializer(alerts, many=True).data})


class ComplianceSummaryView(APIView):
    permission_classes = [IsPlatformOperator]

    def get(self, request):
        return Response(ComplianceAlertService().get_alert_summary())


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = AuditLogSerializer
    queryset = AuditLog.objects.all()
    permission_classes = [IsPlatformOperator]
    filterset_fields = ["entity_type", "entity_id", "action"]
    ordering_fields = ["performed_at"]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        qs = super().get_queryset()
        actor = self.request.query_params.get("performed_by")
        if actor:
            qs = qs.filter(Q(performed_by=actor) | Q(performed_by__endswith=f":{actor}"))
        return qs
