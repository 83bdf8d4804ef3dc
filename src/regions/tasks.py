"""Celery tasks for the regions app."""
import logging

from celery import shared_task
from django.utils import timezone

from core.periods import previous_month

logger = logging.getLogger("hrm8")


@shared_task(name="regions.tasks.close_previous_month_revenue")
def close_previous_month_revenue(force=False):
    """On the 1st of the month, close last month's revenue for every active region
    and settle confirmed revenue for each active licensee.
    """
    from regions.ledger import RegionalRevenueLedger
    from regions.models import RegionalLicensee

    today = timezone.localdate()
    if today.day != 1 and not force:
        logger.debug("close_previous_month_revenue skipped: not the first day of the month.")
        return {"skipped": True}

    month = previous_month(today)
    ledger = RegionalRevenueLedger()
    result = ledger.close_all_regions_for_month(month)

    for licensee in RegionalLicensee.objects.filter(status=RegionalLicensee.Status.ACTIVE):
        try:
            settled = ledger.generate_settlement(licensee, month)
        except Exception as exc:
            logger.exception("Settlement generation failed for licensee %s", licensee.pk)
            result.errors.append(f"Licensee {licensee.name}: {exc}")
            continue
        if settled.success:
            result.settlements += 1

    logger.info(
        "close_previous_month_revenue completed: %d processed, %d settlements, %d errors.",
        result.processed, result.settlements, len(result.errors),
    )
    return result.as_dict()
