"""Handling of payment-completed events for jobs.

The payment collaborator delivers one event per completed checkout.  The
same event may be delivered more than once; handling it again marks
nothing twice and creates no second commission.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from companies.attribution import AttributionService
from core.money import ZERO, round2
from jobs.models import Job

from .engine import CommissionEngine, package_price
from .models import Commission

logger = logging.getLogger("hrm8")


@dataclass(frozen=True)
class JobPaymentEvent:
    job_id: int
    company_id: int
    service_package: str
    amount_paid: Decimal
    paid_at: datetime | None = None


@dataclass(frozen=True)
class PaymentProcessingResult:
    success: bool
    commission: Commission | None = None
    commission_created: bool = False
    attribution_locked: bool = False
    reason: str = ""


class JobPaymentHandler:

    def __init__(self, engine=None, attribution=None, clock=timezone.now):
        self.engine = engine or CommissionEngine(clock=clock)
        self.attribution = attribution or AttributionService(clock=clock)
        self.clock = clock

    def _mark_job_paid(self, event: JobPaymentEvent):
        with transaction.atomic():
            job = Job.objects.select_for_update().select_related("company").filter(pk=event.job_id).first()
            if job is None:
                return None
            if job.company_id != event.company_id:
                return job
            if job.payment_status != Job.PaymentStatus.PAID:
                job.payment_status = Job.PaymentStatus.PAID
                job.payment_amount = round2(event.amount_paid)
                job.payment_completed_at = event.paid_at or self.clock()
                job.save(update_fields=["payment_status", "payment_amount", "payment_completed_at", "updated_at"])
                logger.info("Job #%s marked paid: %s.", job.pk, job.payment_amount)
        return job

    def handle(self, event: JobPaymentEvent) -> PaymentProcessingResult:
        job = self._mark_job_paid(event)
        if job is None:
            return PaymentProcessingResult(False, reason="Job not found")
        if job.company_id != event.company_id:
            return PaymentProcessingResult(
                False, reason=f"Job {job.pk} does not belong to company {event.company_id}",
            )

        company = job.company
        agent_id = company.referred_by_id
        if agent_id is None:
            return PaymentProcessingResult(True, reason="Company has no referring consultant")
        if not self.attribution.has_valid_attribution(company.pk, agent_id):
            return PaymentProcessingResult(True, reason="Attribution is not valid for the referring consultant")

        if event.service_package == Job.ServicePackage.SELF_MANAGED:
            return PaymentProcessingResult(True, reason="Self-managed jobs do not generate commissions")
        # Unpriced packages fall back to the amount actually paid.
        price = package_price(event.service_package)
        if price == ZERO:
            price = round2(event.amount_paid)
        if price <= ZERO:
            return PaymentProcessingResult(True, reason="No commission to create")

        created = self.engine.create_sales_commission(company.referred_by, job, price=price)
        locked = self.attribution.lock_attribution(company.pk)
        if not locked.success:
            logger.warning("Attribution lock after payment of job #%s failed: %s", job.pk, locked.reason)

        return PaymentProcessingResult(
            success=True,
            commission=created.commission,
            commission_created=created.created,
            attribution_locked=locked.success,
        )


def handle_job_payment(event: JobPaymentEvent, handler: JobPaymentHandler | None = None) -> PaymentProcessingResult:
    return (handler or JobPaymentHandler()).handle(event)
