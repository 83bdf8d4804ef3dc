"""Celery tasks for the consultants app."""
import logging

from celery import shared_task

logger = logging.getLogger("hrm8")


@shared_task(name="consultants.tasks.auto_assign_job")
def auto_assign_job_task(job_id):
    """Assign a freshly created job to the best-scoring consultant of its region."""
    from consultants.services import JobAllocationService
    from core.notifications import Notifier

    result = JobAllocationService(notifier=Notifier()).auto_assign_job(job_id)
    if not result.success:
        logger.info("auto_assign_job #%s: %s", job_id, result.error)
    return {"success": result.success, "consultant_id": result.consultant_id, "error": result.error}
