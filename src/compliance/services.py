"""Compliance alerts for licensees and regions.

Alerts are computed from current state on every call and never stored.
Four detectors run independently:

* overdue payout: PENDING settlements generated more than N days ago;
* inactive region: licensee-owned active regions without a placement
  commission in the last N days;
* revenue decline: licensee-owned regions whose last-month revenue fell by
  at least N percent against the month before;
* agreement: ACTIVE licensees whose agreement ends within N days or has
  already ended.

Alerts are ordered by severity, then detector, then alert id.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import Sum
from django.utils import timezone

from core.money import ZERO
from core.periods import month_bounds, previous_month

logger = logging.getLogger("hrm8")


class Severity:
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    ORDER = (CRITICAL, HIGH, MEDIUM, LOW)


class AlertType:
    OVERDUE_PAYOUT = "OVERDUE_PAYOUT"
    INACTIVE_REGION = "INACTIVE_REGION"
    REVENUE_DECLINE = "REVENUE_DECLINE"
    EXPIRED_AGREEMENT = "EXPIRED_AGREEMENT"

    ORDER = (OVERDUE_PAYOUT, INACTIVE_REGION, REVENUE_DECLINE, EXPIRED_AGREEMENT)


@dataclass(frozen=True)
class ComplianceAlert:
    id: str
    type: str
    severity: str
    entity_type: str
    entity_id: int
    entity_name: str
    title: str
    description: str
    detected_at: datetime
    value: float | None = None
    threshold: float | None = None

    @property
    def source_pk(self) -> int:
        return int(self.id.rsplit("-", 1)[1])

    def sort_key(self):
        return (Severity.ORDER.index(self.severity), AlertType.ORDER.index(self.type), self.source_pk)

    def as_dict(self):
        return asdict(self)


def _setting(name, default):
    return getattr(settings, name, default)


def _money(value) -> str:
    return f"{Decimal(value):,.2f} {_setting('CURRENCY', 'USD')}"


class ComplianceAlertService:

    def __init__(self, clock=timezone.now):
        self.clock = clock

    def _licensed_regions(self):
        from regions.models import Region

        return Region.objects.filter(is_active=True, licensee__isnull=False).select_related("licensee").order_by("pk")

    def get_overdue_payouts(self, threshold_days=None) -> list[ComplianceAlert]:
        from regions.models import Settlement

        if threshold_days is None:
            threshold_days = _setting("HRM8_COMPLIANCE_OVERDUE_PAYOUT_DAYS", 30)
        now = self.clock()
        settlements = (
            Settlement.objects
            .filter(status=Settlement.Status.PENDING, generated_at__lte=now - timedelta(days=threshold_days))
            .select_related("licensee")
            .order_by("pk")
        )
        alerts = []
        for settlement in settlements:
            days_overdue = (now - settlement.generated_at).days
            if days_overdue > 60:
                severity = Severity.CRITICAL
            elif days_overdue > 45:
                severity = Severity.HIGH
            else:
                severity = Severity.MEDIUM
            alerts.append(ComplianceAlert(
                id=f"overdue-{settlement.pk}",
                type=AlertType.OVERDUE_PAYOUT,
                severity=severity,
                entity_type="LICENSEE",
                entity_id=settlement.licensee_id,
                entity_name=settlement.licensee.name if settlement.licensee else "Unknown",
                title="Overdue Payout",
                description=f"Settlement of {_money(settlement.licensee_share)} is {days_overdue} days overdue",
                value=float(settlement.licensee_share),
                threshold=threshold_days,
                detected_at=now,
            ))
        return alerts

    def get_inactive_regions(self, threshold_days=None) -> list[ComplianceAlert]:
        from commissions.models import Commission

        if threshold_days is None:
            threshold_days = _setting("HRM8_COMPLIANCE_INACTIVE_REGION_DAYS", 60)
        now = self.clock()
        since = now - timedelta(days=threshold_days)
        active_region_ids = set(
            Commission.objects
            .filter(type=Commission.Type.PLACEMENT, created_at__gte=since, region__isnull=False)
            .values_list("region_id", flat=True)
        )
        alerts = []
        for region in self._licensed_regions():
            if region.pk in active_region_ids:
                continue
            alerts.append(ComplianceAlert(
                id=f"inactive-{region.pk}",
                type=AlertType.INACTIVE_REGION,
                severity=Severity.MEDIUM,
                entity_type="REGION",
                entity_id=region.pk,
                entity_name=region.name,
                title="Inactive Region",
                description=f"No placements in the last {threshold_days} days",
                value=0,
                threshold=threshold_days,
                detected_at=now,
            ))
        return alerts

    def get_revenue_declines(self, threshold_percent=None) -> list[ComplianceAlert]:
        from regions.models import RegionalRevenue

        if threshold_percent is None:
            threshold_percent = _setting("HRM8_COMPLIANCE_REVENUE_DECLINE_PERCENT", 20)
        now = self.clock()
        last_start, last_end = month_bounds(previous_month(now.date()))
        prior_start, prior_end = month_bounds(previous_month(last_start))

        def month_total(region, start, end):
            total = (
                RegionalRevenue.objects
                .filter(region=region, period_start__gte=start, period_start__lte=end)
                .aggregate(total=Sum("total_revenue"))["total"]
            )
            return total or ZERO

        alerts = []
        for region in self._licensed_regions():
            current = month_total(region, last_start, last_end)
            previous = month_total(region, prior_start, prior_end)
            if previous <= 0:
                continue
            decline = float((previous - current) / previous * 100)
            if decline < threshold_percent:
                continue
            alerts.append(ComplianceAlert(
                id=f"decline-{region.pk}",
                type=AlertType.REVENUE_DECLINE,
                severity=Severity.HIGH if decline > 40 else Severity.MEDIUM,
                entity_type="REGION",
                entity_id=region.pk,
                entity_name=region.name,
                title="Revenue Decline",
                description=f"Revenue dropped {decline:.1f}% from {_money(previous)} to {_money(current)}",
                value=decline,
                threshold=threshold_percent,
                detected_at=now,
            ))
        return alerts

    def get_expiring_agreements(self, warning_days=None) -> list[ComplianceAlert]:
        from regions.models import RegionalLicensee

        if warning_days is None:
            warning_days = _setting("HRM8_COMPLIANCE_AGREEMENT_WARNING_DAYS", 30)
        now = self.clock()
        today = now.date()
        licensees = RegionalLicensee.objects.filter(
            status=RegionalLicensee.Status.ACTIVE,
            agreement_end_date__isnull=False,
            agreement_end_date__lte=today + timedelta(days=warning_days),
        ).order_by("pk")
        alerts = []
        for licensee in licensees:
            days_until = (licensee.agreement_end_date - today).days
            expired = days_until < 0
            if expired:
                severity = Severity.CRITICAL
            elif days_until < 7:
                severity = Severity.HIGH
            else:
                severity = Severity.MEDIUM
            alerts.append(ComplianceAlert(
                id=f"agreement-{licensee.pk}",
                type=AlertType.EXPIRED_AGREEMENT,
                severity=severity,
                entity_type="LICENSEE",
                entity_id=licensee.pk,
                entity_name=licensee.name,
                title="Agreement Expired" if expired else "Agreement Expiring Soon",
                description=(
                    f"Agreement expired {abs(days_until)} days ago"
                    if expired else f"Agreement expires in {days_until} days"
                ),
                value=days_until,
                threshold=warning_days,
                detected_at=now,
            ))
        return alerts

    def get_all_alerts(self) -> list[ComplianceAlert]:
        alerts = [
            *self.get_overdue_payouts(),
            *self.get_inactive_regions(),
            *self.get_revenue_declines(),
            *self.get_expiring_agreements(),
        ]
        alerts.sort(key=ComplianceAlert.sort_key)
        return alerts

    def get_alert_summary(self, alerts=None) -> dict:
        alerts = self.get_all_alerts() if alerts is None else alerts
        summary = {
            "total": len(alerts),
            "critical": 0,
            "high": 0,
            "medium": 0,
            "low": 0,
            "by_type": {},
        }
        for alert in alerts:
            summary[alert.severity.lower()] += 1
            summary["by_type"][alert.type] = summary["by_type"].get(alert.type, 0) + 1
        return summary
