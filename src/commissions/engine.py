"""Commission engine.

Creates commission records when qualifying events are observed, moves them
through their lifecycle and expires stale PENDING ones.

``amount = round2(price * rate)`` is a pure function of its inputs, so a
retried event recomputes the same amount.  A job carries at most one
CONFIRMED or PAID commission per type; duplicate payment deliveries return
the existing record.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.audit import AuditTrail
from core.exceptions import InvalidTransitionError
from core.money import ZERO, round2, to_decimal
from core.periods import add_months

from .models import Commission

logger = logging.getLogger("hrm8")

# Packages that include the hiring itself. Sourcing-only packages pay no placement commission.
PLACEMENT_PACKAGES = ("FULL_SERVICE", "EXECUTIVE_SEARCH")


@dataclass(frozen=True)
class CommissionResult:
    success: bool
    commission: Commission | None = None
    created: bool = False
    error: str = ""


@dataclass
class PaymentBatchResult:
    processed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class ExpirySweepResult:
    aged_expired: int = 0
    explicit_expired: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total_expired(self) -> int:
        return self.aged_expired + self.explicit_expired

    @property
    def exit_code(self) -> int:
        return 1 if self.errors else 0

    def as_dict(self):
        return {
            "aged_expired": self.aged_expired,
            "explicit_expired": self.explicit_expired,
            "total_expired": self.total_expired,
            "errors": list(self.errors),
            "exit_code": self.exit_code,
        }


def calculate_amount(price, rate) -> Decimal:
    """Commission for *price* at *rate*, rounded half-up to cents."""
    return round2(to_decimal(price) * to_decimal(rate))


def default_rate() -> Decimal:
    return to_decimal(getattr(settings, "HRM8_DEFAULT_COMMISSION_RATE", "0.10"))


def package_price(service_package) -> Decimal:
    prices = getattr(settings, "HRM8_SERVICE_PACKAGE_PRICES", {})
    return round2(prices.get(str(service_package), 0))


class CommissionEngine:

    def __init__(self, audit=None, notifier=None, clock=timezone.now):
        self.audit = audit or AuditTrail()
        self.notifier = notifier
        self.clock = clock

    calculate_amount = staticmethod(calculate_amount)

    def rate_for(self, consultant) -> Decimal:
        if consultant.default_commission_rate is not None:
            return to_decimal(consultant.default_commission_rate)
        return default_rate()

    def _notify(self, event, commission, subject, message):
        if self.notifier is None:
            return
        recipients = [commission.consultant.email] if commission.consultant.email else None
        self.notifier.notify(
            event, subject, message,
            recipients=recipients,
            payload={"commission_id": commission.pk, "amount": str(commission.amount)},
        )

    def _audit_status(self, commission, previous, performed_by=None, **extra):
        new_value = {"status": commission.status}
        new_value.update(extra)
        self.audit.record(
            "Commission", commission.pk, "STATUS_CHANGE",
            old_value={"status": previous}, new_value=new_value, performed_by=performed_by,
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_sales_commission(self, consultant, job, price=None, performed_by=None) -> CommissionResult:
        """CONFIRMED subscription-sale commission for a paid job. Idempotent per job."""
        from jobs.models import Job

        with transaction.atomic():
            # Duplicate deliveries of the same payment serialise on the job row.
            job = Job.objects.select_for_update().get(pk=job.pk)
            existing = Commission.objects.filter(
                job=job,
                type=Commission.Type.SUBSCRIPTION_SALE,
                status__in=Commission.FROZEN_STATUSES,
            ).first()
            if existing is not None:
                logger.debug("Job #%s already has sales commission #%s.", job.pk, existing.pk)
                return CommissionResult(True, existing, created=False)

            price = package_price(job.service_package) if price is None else round2(price)
            rate = self.rate_for(consultant)
            now = self.clock()
            commission = Commission.objects.create(
                consultant=consultant,
                job=job,
                region_id=job.region_id,
                type=Commission.Type.SUBSCRIPTION_SALE,
                amount=calculate_amount(price, rate),
                rate=rate,
                status=Commission.Status.CONFIRMED,
                confirmed_at=now,
                description=f"Sales commission for {job.get_service_package_display()} - {job.title}",
            )
            self.audit.record(
                "Commission", commission.pk, "CREATE",
                new_value={
                    "type": commission.type,
                    "status": commission.status,
                    "amount": str(commission.amount),
                    "rate": str(commission.rate),
                    "job_id": job.pk,
                },
                performed_by=performed_by,
            )

        logger.info(
            "Sales commission #%s created: %s at %s on %s for consultant #%s.",
            commission.pk, commission.amount, rate, price, consultant.pk,
        )
        self._notify(
            "commission_created",
            commission,
            "Commission confirmed",
            f"A commission of {commission.amount} {settings.CURRENCY} was confirmed for '{job.title}'.",
        )
        return CommissionResult(True, commission, created=True)

    @transaction.atomic
    def record_subscription_sale(self, consultant, subscription, rate=None, expiry_date=None, performed_by=None) -> Commission:
        """PENDING subscription-sale commission, confirmed once the subscription is paid."""
        rate = self.rate_for(consultant) if rate is None else to_decimal(rate)
        company = subscription.company
        commission = Commission.objects.create(
            consultant=consultant,
            subscription=subscription,
            region_id=company.region_id,
            type=Commission.Type.SUBSCRIPTION_SALE,
            amount=calculate_amount(subscription.price, rate),
            rate=rate,
            status=Commission.Status.PENDING,
            commission_expiry_date=expiry_date,
            description=f"Subscription sale: {subscription.plan} - {company.name}",
        )
        self.audit.record(
            "Commission", commission.pk, "CREATE",
            new_value={
                "type": commission.type,
                "status": commission.status,
                "amount": str(commission.amount),
                "subscription_id": subscription.pk,
            },
            performed_by=performed_by,
        )
        logger.info("Subscription-sale commission #%s recorded (pending): %s.", commission.pk, commission.amount)
        return commission

    def create_placement_commission(self, consultant, job, price=None, performed_by=None) -> CommissionResult:
        """PENDING placement commission when a candidate is hired on a full-service job."""
        from jobs.models import Job

        if job.service_package not in PLACEMENT_PACKAGES:
            return CommissionResult(
                False, error=f"{job.service_package} jobs do not generate placement commissions",
            )
        with transaction.atomic():
            job = Job.objects.select_for_update().get(pk=job.pk)
            price = package_price(job.service_package) if price is None else round2(price)
            rate = self.rate_for(consultant)
            amount = calculate_amount(price, rate)
            if amount <= ZERO:
                return CommissionResult(False, error="No commission to create")

            existing = (
                Commission.objects
                .filter(job=job, type=Commission.Type.PLACEMENT)
                .exclude(status=Commission.Status.CANCELLED)
                .first()
            )
            if existing is not None:
                if existing.status == Commission.Status.PENDING and existing.amount != amount:
                    existing.amount, existing.rate = amount, rate
                    existing.save(update_fields=["amount", "rate", "updated_at"])
                return CommissionResult(True, existing, created=False)

            commission = Commission.objects.create(
                consultant=consultant,
                job=job,
                region_id=job.region_id,
                type=Commission.Type.PLACEMENT,
                amount=amount,
                rate=rate,
                description=f"Placement commission for {job.get_service_package_display()} - {job.title}",
            )
            self.audit.record(
                "Commission", commission.pk, "CREATE",
                new_value={"type": commission.type, "status": commission.status, "amount": str(amount)},
                performed_by=performed_by,
            )
        logger.info("Placement commission #%s created for job #%s: %s.", commission.pk, job.pk, amount)
        return CommissionResult(True, commission, created=True)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _lock(self, commission) -> Commission:
        return Commission.objects.select_for_update().select_related("consultant").get(pk=commission.pk)

    @transaction.atomic
    def confirm_commission(self, commission, performed_by=None) -> Commission:
        commission = self._lock(commission)
        if commission.status == Commission.Status.CONFIRMED:
            return commission
        if commission.status != Commission.Status.PENDING:
            raise InvalidTransitionError(f"Commission #{commission.pk}", commission.status, Commission.Status.CONFIRMED)
        commission.status = Commission.Status.CONFIRMED
        commission.confirmed_at = self.clock()
        commission.save(update_fields=["status", "confirmed_at", "updated_at"])
        self._audit_status(commission, Commission.Status.PENDING, performed_by)
        logger.info("Commission #%s confirmed.", commission.pk)
        transaction.on_commit(lambda: self._notify(
            "commission_confirmed", commission, "Commission confirmed",
            f"Your commission #{commission.pk} of {commission.amount} has been confirmed.",
        ))
        return commission

    @transaction.atomic
    def mark_commission_paid(self, commission, payment_reference="", performed_by=None) -> Commission:
        commission = self._lock(commission)
        if commission.status != Commission.Status.CONFIRMED:
            detail = "Commission already paid." if commission.status == Commission.Status.PAID else ""
            raise InvalidTransitionError(
                f"Commission #{commission.pk}", commission.status, Commission.Status.PAID, detail,
            )
        commission.status = Commission.Status.PAID
        commission.paid_at = self.clock()
        commission.payment_reference = payment_reference
        commission.save(update_fields=["status", "paid_at", "payment_reference", "updated_at"])
        self._audit_status(commission, Commission.Status.CONFIRMED, performed_by, payment_reference=payment_reference)
        logger.info("Commission #%s paid (ref %s).", commission.pk, payment_reference or "-")
        transaction.on_commit(lambda: self._notify(
            "commission_paid", commission, "Commission paid",
            f"Your commission #{commission.pk} of {commission.amount} has been paid.",
        ))
        return commission

    @transaction.atomic
    def cancel_commission(self, commission, reason="", performed_by=None) -> Commission:
        commission = self._lock(commission)
        if commission.status != Commission.Status.PENDING:
            raise InvalidTransitionError(
                f"Commission #{commission.pk}", commission.status, Commission.Status.CANCELLED,
                "Only pending commissions can be cancelled.",
            )
        commission.status = Commission.Status.CANCELLED
        if reason:
            commission.notes = reason
        commission.save(update_fields=["status", "notes", "updated_at"])
        self._audit_status(commission, Commission.Status.PENDING, performed_by, reason=reason)
        logger.info("Commission #%s cancelled: %s", commission.pk, reason or "-")
        return commission

    def process_payments(self, commission_ids, payment_reference, performed_by=None) -> PaymentBatchResult:
        """Pay each commission independently; failures are collected, not raised."""
        result = PaymentBatchResult()
        for commission_id in commission_ids:
            commission = Commission.objects.filter(pk=commission_id).first()
            if commission is None:
                result.errors.append(f"Commission {commission_id}: Commission not found")
                continue
            try:
                self.mark_commission_paid(commission, payment_reference, performed_by=performed_by)
            except InvalidTransitionError as exc:
                result.errors.append(f"Commission {commission_id}: {exc}")
                continue
            result.processed += 1
        return result

    # ------------------------------------------------------------------
    # Expiry sweep
    # ------------------------------------------------------------------

    def _expire_one(self, commission_id, note, audit_value) -> bool:
        with transaction.atomic():
            updated = Commission.objects.filter(pk=commission_id, status=Commission.Status.PENDING).update(
                status=Commission.Status.CANCELLED,
                notes=note,
                updated_at=self.clock(),
            )
            if updated:
                self.audit.record(
                    "Commission", commission_id, "EXPIRE",
                    old_value={"status": Commission.Status.PENDING},
                    new_value=dict(audit_value, status=Commission.Status.CANCELLED, note=note),
                )
        return bool(updated)

    def expire_stale_commissions(self) -> ExpirySweepResult:
        """Cancel PENDING commissions past their window. Safe to re-run.

        Two independent passes:

        * subscription sales whose own age and whose subscription's age both
          exceed ``HRM8_COMMISSION_EXPIRY_MONTHS``;
        * any commission whose ``commission_expiry_date`` has passed.
        """
        now = self.clock()
        months = getattr(settings, "HRM8_COMMISSION_EXPIRY_MONTHS", 12)
        cutoff = add_months(now, -months)
        result = ExpirySweepResult()

        aged = (
            Commission.objects
            .filter(
                status=Commission.Status.PENDING,
                type=Commission.Type.SUBSCRIPTION_SALE,
                created_at__lt=cutoff,
                subscription__isnull=False,
                subscription__start_date__lt=cutoff.date(),
            )
            .order_by("pk")
            .values_list("pk", "subscription__start_date")
        )
        for commission_id, start_date in aged:
            note = (
                f"Auto-expired: Commission period exceeded {months} months "
                f"from subscription start ({start_date.isoformat()})"
            )
            try:
                if self._expire_one(commission_id, note, {"subscription_start_date": start_date.isoformat()}):
                    result.aged_expired += 1
            except Exception as exc:
                logger.exception("Failed to expire commission #%s", commission_id)
                result.errors.append(f"Commission {commission_id}: {exc}")

        explicit = (
            Commission.objects
            .filter(status=Commission.Status.PENDING, commission_expiry_date__lt=now)
            .order_by("pk")
            .values_list("pk", "commission_expiry_date")
        )
        for commission_id, expiry in explicit:
            try:
                if self._expire_one(
                    commission_id,
                    "Auto-expired: Commission expiry date passed",
                    {"commission_expiry_date": expiry.isoformat()},
                ):
                    result.explicit_expired += 1
            except Exception as exc:
                logger.exception("Failed to expire commission #%s", commission_id)
                result.errors.append(f"Commission {commission_id}: {exc}")

        logger.info(
            "Commission expiry completed: %d aged, %d explicit, %d errors.",
            result.aged_expired, result.explicit_expired, len(result.errors),
        )
        return result
