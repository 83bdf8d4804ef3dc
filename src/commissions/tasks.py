"""Celery tasks for the commissions app."""
import logging
from decimal import Decimal

from celery import shared_task

logger = logging.getLogger("hrm8")


@shared_task(name="commissions.tasks.expire_commissions")
def expire_commissions():
    """Cancel PENDING commissions whose window or explicit expiry date has passed."""
    from commissions.engine import CommissionEngine

    result = CommissionEngine().expire_stale_commissions()
    logger.info("expire_commissions completed: %d expired.", result.total_expired)
    return result.as_dict()


@shared_task(name="commissions.tasks.process_job_payment")
def process_job_payment(job_id, company_id, service_package, amount_paid):
    """Entry point for the payment collaborator's checkout-completed events."""
    from commissions.engine import CommissionEngine
    from commissions.events import JobPaymentEvent, JobPaymentHandler
    from core.notifications import Notifier

    event = JobPaymentEvent(
        job_id=job_id,
        company_id=company_id,
        service_package=service_package,
        amount_paid=Decimal(str(amount_paid)),
    )
    handler = JobPaymentHandler(engine=CommissionEngine(notifier=Notifier()))
    result = handler.handle(event)
    if not result.success:
        logger.warning("process_job_payment for job #%s rejected: %s", job_id, result.reason)
    return {
        "success": result.success,
        "commission_id": result.commission.pk if result.commission else None,
        "commission_created": result.commission_created,
        "attribution_locked": result.attribution_locked,
        "reason": result.reason,
    }
