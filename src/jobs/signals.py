"""Signals: queue auto-assignment when a job is created."""
from __future__ import annotations

import logging

from django.conf import settings
from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Job

logger = logging.getLogger("hrm8")


@receiver(post_save, sender=Job, dispatch_uid="jobs_auto_assign_on_create")
def auto_assign_new_job(sender, instance, created, raw=False, **kwargs):
    if raw or not created:
        return
    if not getattr(settings, "HRM8_AUTO_ASSIGN_ON_JOB_CREATE", False):
        return
    if instance.region_id is None or instance.assigned_consultant_id is not None:
        return

    job_id = instance.pk

    def _dispatch() -> None:
        from consultants.tasks import auto_assign_job_task

        try:
            auto_assign_job_task.delay(job_id)
        except Exception:
            logger.exception("Could not queue auto-assignment for job #%s", job_id)

    transaction.on_commit(_dispatch)
