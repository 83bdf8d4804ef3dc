"""Regional revenue ledger.

Records, per region and accounting period, how much revenue was generated
and how it splits between the regional licensee and HRM8.  The split is
always derived by subtraction (``hrm8_share = total - licensee_share``) so
the two shares sum to the total exactly.

State machine for :class:`~regions.models.RegionalRevenue`::

    PENDING -> CONFIRMED -> PAID

No transition skips a state.  Confirming a CONFIRMED record is a no-op.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from core.audit import AuditTrail
from core.exceptions import InvalidTransitionError
from core.money import ZERO, round2, to_decimal
from core.periods import month_bounds

from .exceptions import LedgerIntegrityError, RevenuePeriodOverlapError
from .models import Region, RegionalLicensee, RegionalRevenue, Settlement

logger = logging.getLogger("hrm8")

HUNDRED = Decimal("100")


def compute_split(
    total_revenue,
    revenue_share_percent=None,
    licensee_share=None,
    hrm8_share=None,
    has_licensee: bool = True,
) -> tuple[Decimal, Decimal]:
    """Return ``(licensee_share, hrm8_share)`` for *total_revenue*.

    Either explicit shares or a percentage may be given.  With a percentage,
    ``licensee_share = round2(total * percent / 100)`` and the HRM8 share is
    the remainder.  A lone ``hrm8_share`` leaves the licensee the remainder.
    Regions without a licensee always yield a zero licensee share.
    """
    total = round2(total_revenue)
    if total < 0:
        raise LedgerIntegrityError(f"Total revenue cannot be negative: {total}")

    if not has_licensee:
        if licensee_share is not None and round2(licensee_share) != ZERO:
            raise LedgerIntegrityError("A region without a licensee cannot carry a licensee share.")
        if hrm8_share is not None and round2(hrm8_share) != total:
            raise LedgerIntegrityError(f"HRM8 share {round2(hrm8_share)} must equal total {total} without a licensee.")
        return ZERO, total

    if licensee_share is not None:
        licensee = round2(licensee_share)
        if hrm8_share is not None and licensee + round2(hrm8_share) != total:
            raise LedgerIntegrityError(
                f"Explicit shares {licensee} + {round2(hrm8_share)} do not sum to {total}."
            )
    elif hrm8_share is not None:
        licensee = total - round2(hrm8_share)
    else:
        percent = to_decimal(revenue_share_percent or 0)
        if percent < 0 or percent > HUNDRED:
            raise ValueError(f"revenue_share_percent must be within [0, 100], got {percent}.")
        licensee = round2(total * percent / HUNDRED)

    hrm8 = total - licensee
    if licensee < 0 or hrm8 < 0:
        raise LedgerIntegrityError(f"Split of {total} produced a negative share ({licensee}, {hrm8}).")
    return licensee, hrm8


@dataclass(frozen=True)
class RevenuePatch:
    """Partial update of a revenue record. ``None`` leaves a field unchanged."""

    total_revenue: Decimal | None = None
    licensee_share: Decimal | None = None
    hrm8_share: Decimal | None = None
    revenue_share_percent: Decimal | None = None
    period_start: date | None = None
    period_end: date | None = None

    def touches_amounts(self) -> bool:
        return any(
            value is not None
            for value in (self.total_revenue, self.licensee_share, self.hrm8_share, self.revenue_share_percent)
        )


@dataclass
class LedgerCloseResult:
    month: date
    processed: int = 0
    skipped: int = 0
    settlements: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.errors else 0

    def as_dict(self):
        return {
            "month": self.month.strftime("%Y-%m"),
            "processed": self.processed,
            "skipped": self.skipped,
            "settlements": self.settlements,
            "errors": list(self.errors),
            "exit_code": self.exit_code,
        }


@dataclass
class SettlementResult:
    success: bool
    settlement: Settlement | None = None
    error: str = ""
    revenue_records_included: int = 0


def _snapshot(revenue: RegionalRevenue) -> dict:
    return {
        "status": revenue.status,
        "total_revenue": str(revenue.total_revenue),
        "licensee_share": str(revenue.licensee_share),
        "hrm8_share": str(revenue.hrm8_share),
        "period_start": revenue.period_start.isoformat(),
        "period_end": revenue.period_end.isoformat(),
    }


class RegionalRevenueLedger:
    """Create, reconcile and settle regional revenue records."""

    def __init__(self, audit=None, notifier=None, clock=timezone.now):
        self.audit = audit or AuditTrail()
        self.notifier = notifier
        self.clock = clock

    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------

    def _check_overlap(self, region, start, end, exclude_pk=None):
        if end < start:
            raise ValueError(f"period_end {end} is before period_start {start}.")
        clash = RegionalRevenue.objects.for_region(region).overlapping(start, end)
        if exclude_pk is not None:
            clash = clash.exclude(pk=exclude_pk)
        existing = clash.first()
        if existing is not None:
            raise RevenuePeriodOverlapError(
                f"Period {start}..{end} overlaps revenue #{existing.pk} "
                f"({existing.period_start}..{existing.period_end}) of region {region.code}."
            )

    @transaction.atomic
    def create_revenue(
        self,
        region: Region,
        period_start: date,
        period_end: date,
        total_revenue,
        licensee_share=None,
        hrm8_share=None,
        revenue_share_percent=None,
        performed_by=None,
    ) -> RegionalRevenue:
        # Serialise writers of the same region so the overlap check holds.
        region = Region.objects.select_for_update().select_related("licensee").get(pk=region.pk)
        self._check_overlap(region, period_start, period_end)

        licensee = region.licensee
        if revenue_share_percent is None and licensee_share is None and licensee is not None:
            revenue_share_percent = licensee.revenue_share_percent
        licensee_amount, hrm8_amount = compute_split(
            total_revenue,
            revenue_share_percent=revenue_share_percent,
            licensee_share=licensee_share,
            hrm8_share=hrm8_share,
            has_licensee=licensee is not None,
        )

        revenue = RegionalRevenue.objects.create(
            region=region,
            licensee=licensee,
            period_start=period_start,
            period_end=period_end,
            total_revenue=round2(total_revenue),
            licensee_share=licensee_amount,
            hrm8_share=hrm8_amount,
        )
        self.audit.record(
            "RegionalRevenue", revenue.pk, "CREATE",
            new_value=_snapshot(revenue), performed_by=performed_by,
        )
        logger.info(
            "Revenue #%s created for %s %s..%s: total=%s licensee=%s hrm8=%s",
            revenue.pk, region.code, period_start, period_end,
            revenue.total_revenue, revenue.licensee_share, revenue.hrm8_share,
        )
        return revenue

    @transaction.atomic
    def update_revenue(self, revenue: RegionalRevenue, patch: RevenuePatch, performed_by=None) -> RegionalRevenue:
        revenue = (
            RegionalRevenue.objects
            .select_for_update()
            .select_related("region", "licensee")
            .get(pk=revenue.pk)
        )
        if revenue.status == RegionalRevenue.Status.PAID:
            raise InvalidTransitionError(
                f"RegionalRevenue #{revenue.pk}", revenue.status, "UPDATE",
                "Paid revenue records are immutable.",
            )
        before = _snapshot(revenue)

        start = patch.period_start or revenue.period_start
        end = patch.period_end or revenue.period_end
        if start != revenue.period_start or end != revenue.period_end:
            self._check_overlap(revenue.region, start, end, exclude_pk=revenue.pk)
            revenue.period_start, revenue.period_end = start, end

        if patch.touches_amounts():
            total = patch.total_revenue if patch.total_revenue is not None else revenue.total_revenue
            percent = patch.revenue_share_percent
            explicit = patch.licensee_share
            if percent is None and explicit is None:
                if revenue.licensee is not None:
                    percent = revenue.licensee.revenue_share_percent
            revenue.licensee_share, revenue.hrm8_share = compute_split(
                total,
                revenue_share_percent=percent,
                licensee_share=explicit,
                hrm8_share=patch.hrm8_share,
                has_licensee=revenue.licensee_id is not None,
            )
            revenue.total_revenue = round2(total)

        revenue.save()
        self.audit.record(
            "RegionalRevenue", revenue.pk, "UPDATE",
            old_value=before, new_value=_snapshot(revenue), performed_by=performed_by,
        )
        return revenue

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @transaction.atomic
    def confirm(self, revenue: RegionalRevenue, performed_by=None) -> RegionalRevenue:
        revenue = RegionalRevenue.objects.select_for_update().get(pk=revenue.pk)
        if revenue.status == RegionalRevenue.Status.CONFIRMED:
            logger.debug("Revenue #%s already confirmed.", revenue.pk)
            return revenue
        if revenue.status != RegionalRevenue.Status.PENDING:
            raise InvalidTransitionError(
                f"RegionalRevenue #{revenue.pk}", revenue.status, RegionalRevenue.Status.CONFIRMED,
            )
        revenue.status = RegionalRevenue.Status.CONFIRMED
        revenue.save(update_fields=["status", "updated_at"])
        self.audit.record(
            "RegionalRevenue", revenue.pk, "STATUS_CHANGE",
            old_value={"status": RegionalRevenue.Status.PENDING},
            new_value={"status": revenue.status},
            performed_by=performed_by,
        )
        logger.info("Revenue #%s confirmed.", revenue.pk)
        return revenue

    @transaction.atomic
    def mark_paid(self, revenue: RegionalRevenue, performed_by=None) -> RegionalRevenue:
        revenue = RegionalRevenue.objects.select_for_update().get(pk=revenue.pk)
        if revenue.status != RegionalRevenue.Status.CONFIRMED:
            raise InvalidTransitionError(
                f"RegionalRevenue #{revenue.pk}", revenue.status, RegionalRevenue.Status.PAID,
                "Only confirmed revenue can be paid.",
            )
        revenue.status = RegionalRevenue.Status.PAID
        revenue.paid_at = self.clock()
        revenue.save(update_fields=["status", "paid_at", "updated_at"])
        self.audit.record(
            "RegionalRevenue", revenue.pk, "STATUS_CHANGE",
            old_value={"status": RegionalRevenue.Status.CONFIRMED},
            new_value={"status": revenue.status, "paid_at": revenue.paid_at.isoformat()},
            performed_by=performed_by,
        )
        logger.info("Revenue #%s marked paid.", revenue.pk)
        return revenue

    # ------------------------------------------------------------------
    # Month close
    # ------------------------------------------------------------------

    def calculate_monthly_revenue(self, region: Region, month: date) -> Decimal:
        """Sum of job payments completed in *region* during *month*."""
        from jobs.models import Job

        start, end = month_bounds(month)
        total = (
            Job.objects
            .filter(
                region=region,
                payment_status=Job.PaymentStatus.PAID,
                payment_completed_at__date__gte=start,
                payment_completed_at__date__lte=end,
            )
            .aggregate(total=Sum("payment_amount"))["total"]
        )
        return round2(total or ZERO)

    @transaction.atomic
    def close_month(self, region: Region, month: date) -> RegionalRevenue | None:
        """Create or refresh the revenue record of *region* for *month*.

        Returns ``None`` when the month had no revenue.  A PAID record is
        returned untouched.
        """
        region = Region.objects.select_for_update().select_related("licensee").get(pk=region.pk)
        start, end = month_bounds(month)
        total = self.calculate_monthly_revenue(region, month)
        if total == ZERO:
            logger.debug("No revenue for region %s in %s.", region.code, start.strftime("%Y-%m"))
            return None

        licensee = region.licensee
        percent = ZERO
        if licensee is not None and licensee.status == RegionalLicensee.Status.ACTIVE:
            percent = licensee.revenue_share_percent

        existing = RegionalRevenue.objects.filter(region=region, period_start=start, period_end=end).first()
        if existing is None:
            return self.create_revenue(region, start, end, total, revenue_share_percent=percent)
        if existing.status == RegionalRevenue.Status.PAID:
            return existing
        return self.update_revenue(existing, RevenuePatch(total_revenue=total, revenue_share_percent=percent))

    def close_all_regions_for_month(self, month: date) -> LedgerCloseResult:
        """Close *month* for every active region; one failing region never stops the rest."""
        result = LedgerCloseResult(month=month_bounds(month)[0])
        for region in Region.objects.filter(is_active=True).order_by("pk"):
            try:
                revenue = self.close_month(region, month)
            except Exception as exc:
                logger.exception("Month close failed for region %s", region.code)
                result.errors.append(f"Region {region.name}: {exc}")
                continue
            if revenue is None:
                result.skipped += 1
            else:
                result.processed += 1
                logger.info("Processed revenue for region %s: %s", region.code, revenue.total_revenue)
        return result

    # ------------------------------------------------------------------
    # Settlements
    # ------------------------------------------------------------------

    @transaction.atomic
    def generate_settlement(self, licensee: RegionalLicensee, month: date, performed_by=None) -> SettlementResult:
        """Bundle the licensee's confirmed, unsettled revenue up to the end of *month*."""
        licensee = RegionalLicensee.objects.select_for_update().get(pk=licensee.pk)
        _, period_end = month_bounds(month)
        revenues = list(
            RegionalRevenue.objects
            .select_for_update()
            .filter(
                licensee=licensee,
                status=RegionalRevenue.Status.CONFIRMED,
                settlement__isnull=True,
                period_end__lte=period_end,
            )
            .order_by("period_start")
        )
        if not revenues:
            return SettlementResult(success=False, error="No confirmed revenue to settle")

        settlement = Settlement.objects.create(
            licensee=licensee,
            period_start=revenues[0].period_start,
            period_end=max(r.period_end for r in revenues),
            total_revenue=sum((r.total_revenue for r in revenues), ZERO),
            licensee_share=sum((r.licensee_share for r in revenues), ZERO),
            hrm8_share=sum((r.hrm8_share for r in revenues), ZERO),
            generated_at=self.clock(),
        )
        if settlement.licensee_share + settlement.hrm8_share != settlement.total_revenue:
            logger.error("Settlement #%s does not balance.", settlement.pk)
            raise LedgerIntegrityError(f"Settlement #{settlement.pk} shares do not sum to its total.")
        RegionalRevenue.objects.filter(pk__in=[r.pk for r in revenues]).update(settlement=settlement)

        self.audit.record(
            "Settlement", settlement.pk, "CREATE",
            new_value={
                "licensee_id": licensee.pk,
                "licensee_share": str(settlement.licensee_share),
                "revenues": [r.pk for r in revenues],
            },
            performed_by=performed_by,
        )
        logger.info(
            "Settlement #%s generated for %s: %s over %d revenue record(s).",
            settlement.pk, licensee, settlement.licensee_share, len(revenues),
        )
        return SettlementResult(success=True, settlement=settlement, revenue_records_included=len(revenues))

    @transaction.atomic
    def mark_settlement_paid(self, settlement: Settlement, payment_reference: str = "", performed_by=None) -> Settlement:
        settlement = Settlement.objects.select_for_update().get(pk=settlement.pk)
        if settlement.status == Settlement.Status.PAID:
            raise InvalidTransitionError(
                f"Settlement #{settlement.pk}", settlement.status, Settlement.Status.PAID,
                "Settlement already paid.",
            )
        now = self.clock()
        settlement.status = Settlement.Status.PAID
        settlement.paid_at = now
        settlement.payment_reference = payment_reference
        settlement.save(update_fields=["status", "paid_at", "payment_reference", "updated_at"])

        for revenue in settlement.revenues.filter(status=RegionalRevenue.Status.CONFIRMED):
            self.mark_paid(revenue, performed_by=performed_by)

        self.audit.record(
            "Settlement", settlement.pk, "STATUS_CHANGE",
            old_value={"status": Settlement.Status.PENDING},
            new_value={"status": settlement.status, "payment_reference": payment_reference},
            performed_by=performed_by,
        )
        if self.notifier is not None and settlement.licensee.email:
            self.notifier.notify(
                "settlement_paid",
                "Settlement paid",
                f"Settlement #{settlement.pk} of {settlement.licensee_share} has been paid.",
                recipients=[settlement.licensee.email],
                payload={"reference": payment_reference},
            )
        return settlement
