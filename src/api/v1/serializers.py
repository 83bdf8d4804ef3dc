"""Serializers for the HRM8 admin API v1."""
from decimal import Decimal

from rest_framework import serializers

from commissions.models import Commission
from companies.models import Company, Subscription
from consultants.models import Consultant, ConsultantJobAssignment
from core.models import AuditLog
from jobs.models import Job
from regions.models import Region, RegionalLicensee, RegionalRevenue, Settlement


# ---------------------------------------------------------------------------
# Companies / attribution
# ---------------------------------------------------------------------------

class SubscriptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subscription
        fields = ["id", "plan", "price", "start_date", "end_date", "status"]


class CompanySerializer(serializers.ModelSerializer):
    is_locked = serializers.SerializerMethodField()
    lock_expires_at = serializers.SerializerMethodField()

    class Meta:
        model = Company
        fields = [
            "id", "name", "domain", "region", "referred_by",
            "attribution_locked", "attribution_locked_at", "is_locked", "lock_expires_at",
            "created_at", "updated_at",
        ]
        read_only_fields = fields

    def _service(self):
        from companies.attribution import AttributionService

        return self.context.get("attribution") or AttributionService()

    def get_is_locked(self, obj):
        return self._service().is_locked(obj)

    def get_lock_expires_at(self, obj):
        expiry = self._service().get_lock_expiry_date(obj)
        return expiry.isoformat() if expiry else None


class AssignAgentSerializer(serializers.Serializer):
    agent = serializers.IntegerField(min_value=1)


class OverrideAttributionSerializer(serializers.Serializer):
    agent = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(max_length=1000, trim_whitespace=True)


# ---------------------------------------------------------------------------
# Consultants / jobs
# ---------------------------------------------------------------------------

class ConsultantSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(source="get_full_name", read_only=True)

    class Meta:
        model = Consultant
        fields = [
            "id", "first_name", "last_name", "full_name", "email", "role", "status", "availability",
            "current_jobs", "max_jobs", "industry_expertise", "success_rate", "average_days_to_fill",
            "default_commission_rate", "region",
        ]
        read_only_fields = fields


class ConsultantJobAssignmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = ConsultantJobAssignment
        fields = [
            "id", "consultant", "job", "status", "assignment_source", "assigned_by", "assigned_at",
            "pipeline_stage", "pipeline_progress",
        ]
        read_only_fields = fields


class JobSerializer(serializers.ModelSerializer):
    class Meta:
        model = Job
        fields = [
            "id", "title", "company", "region", "category", "service_package", "payment_status",
            "payment_amount", "payment_completed_at", "assigned_consultant", "assignment_source",
            "created_at",
        ]
        read_only_fields = fields


class AssignJobSerializer(serializers.Serializer):
    consultant = serializers.IntegerField(min_value=1)


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------

class CommissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Commission
        fields = [
            "id", "consultant", "job", "region", "subscription", "type", "amount", "rate", "status",
            "description", "notes", "confirmed_at", "paid_at", "payment_reference",
            "commission_expiry_date", "created_at",
        ]
        read_only_fields = fields


class PaymentReferenceSerializer(serializers.Serializer):
    payment_reference = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")


class BatchPaymentSerializer(serializers.Serializer):
    commission_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    payment_reference = serializers.CharField(max_length=255)


# ---------------------------------------------------------------------------
# Regions / licensees / revenue
# ---------------------------------------------------------------------------

class RegionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Region
        fields = ["id", "name", "code", "country", "is_active", "licensee"]
        read_only_fields = fields


class RegionalLicenseeSerializer(serializers.ModelSerializer):
    class Meta:
        model = RegionalLicensee
        fields = [
            "id", "name", "legal_entity_name", "email", "revenue_share_percent",
            "agreement_start_date", "agreement_end_date", "status", "created_at",
        ]
        read_only_fields = ["id", "status", "created_at"]

    def validate(self, attrs):
        start = attrs.get("agreement_start_date") or getattr(self.instance, "agreement_start_date", None)
        end = attrs.get("agreement_end_date") or getattr(self.instance, "agreement_end_date", None)
        if start and end and end < start:
            raise serializers.ValidationError({"agreement_end_date": "Agreement end must follow its start."})
        return attrs


class LicenseeActionSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")


class RegionalRevenueSerializer(serializers.ModelSerializer):
    class Meta:
        model = RegionalRevenue
        fields = [
            "id", "region", "licensee", "period_start", "period_end", "total_revenue",
            "licensee_share", "hrm8_share", "status", "paid_at", "settlement", "created_at",
        ]
        read_only_fields = fields


class RevenueInputSerializer(serializers.Serializer):
    """Create/update payload. Shares are either given as a pair or derived from a percentage."""

    region = serializers.PrimaryKeyRelatedField(queryset=Region.objects.all(), required=False)
    period_start = serializers.DateField(required=False)
    period_end = serializers.DateField(required=False)
    total_revenue = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0"), required=False)
    licensee_share = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0"), required=False)
    hrm8_share = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0"), required=False)
    revenue_share_percent = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal("0"), max_value=Decimal("100"), required=False,
    )

    def validate(self, attrs):
        creating = self.instance is None
        if creating:
            missing = [f for f in ("region", "period_start", "period_end", "total_revenue") if f not in attrs]
            if missing:
                raise serializers.ValidationError({f: "This field is required." for f in missing})
        start = attrs.get("period_start") or getattr(self.instance, "period_start", None)
        end = attrs.get("period_end") or getattr(self.instance, "period_end", None)
        if start and end and end < start:
            raise serializers.ValidationError({"period_end": "Period end must not precede period start."})
        if "revenue_share_percent" in attrs and "licensee_share" in attrs:
            raise serializers.ValidationError("Give either licensee_share or revenue_share_percent, not both.")
        if "hrm8_share" in attrs and "licensee_share" not in attrs:
            raise serializers.ValidationError({"licensee_share": "Required when hrm8_share is given."})
        if "licensee_share" in attrs and "hrm8_share" in attrs:
            total = attrs.get("total_revenue", getattr(self.instance, "total_revenue", None))
            if total is not None and attrs["licensee_share"] + attrs["hrm8_share"] != total:
                raise serializers.ValidationError("licensee_share + hrm8_share must equal total_revenue.")
        return attrs


class SettlementSerializer(serializers.ModelSerializer):
    class Meta:
        model = Settlement
        fields = [
            "id", "licensee", "period_start", "period_end", "total_revenue", "licensee_share",
            "hrm8_share", "status", "generated_at", "paid_at", "payment_reference",
        ]
        read_only_fields = fields


class GenerateSettlementSerializer(serializers.Serializer):
    licensee = serializers.PrimaryKeyRelatedField(queryset=RegionalLicensee.objects.all())
    month = serializers.RegexField(r"^\d{4}-\d{2}$")


# ---------------------------------------------------------------------------
# Compliance / audit
# ---------------------------------------------------------------------------

class ComplianceAlertSerializer(serializers.Serializer):
    id = serializers.CharField()
    type = serializers.CharField()
    severity = serializers.CharField()
    entity_type = serializers.CharField()
    entity_id = serializers.IntegerField()
    entity_name = serializers.CharField()
    title = serializers.CharField()
    description = serializers.CharField()
    value = serializers.FloatField(allow_null=True)
    threshold = serializers.FloatField(allow_null=True)
    detected_at = serializers.DateTimeField()


class AuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLog
        fields = [
            "id", "entity_type", "entity_id", "action", "old_value", "new_value",
            "performed_by", "performed_at",
        ]
        read_only_fields = fields
