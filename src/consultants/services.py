"""Job allocation: the only writers of ``Consultant.current_jobs``.

Every function locks the consultant rows it touches with
``select_for_update()`` and re-checks capacity under that lock, so two
concurrent assignments cannot push a consultant past ``max_jobs``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.audit import AuditTrail, resolve_actor

from .matching import AutoAssignmentService
from .models import Consultant, ConsultantJobAssignment

logger = logging.getLogger("hrm8")


@dataclass(frozen=True)
class AssignmentResult:
    success: bool
    consultant_id: int | None = None
    error: str = ""


def _release(consultant_ids):
    """Decrement the job counter of each consultant, never below zero."""
    for consultant_id in consultant_ids:
        Consultant.objects.filter(pk=consultant_id, current_jobs__gt=0).update(
            current_jobs=F("current_jobs") - 1,
        )


class JobAllocationService:

    def __init__(self, audit=None, notifier=None, matcher=None, clock=timezone.now):
        self.audit = audit or AuditTrail()
        self.notifier = notifier
        self.matcher = matcher or AutoAssignmentService()
        self.clock = clock

    def assign_job_to_consultant(
        self,
        job,
        consultant,
        source=ConsultantJobAssignment.Source.MANUAL,
        assigned_by=None,
    ) -> AssignmentResult:
        """Give *job* to *consultant*, moving it away from any previous consultant."""
        from jobs.models import Job

        with transaction.atomic():
            job = Job.objects.select_for_update().get(pk=job.pk)
            locked = Consultant.objects.select_for_update().filter(pk=consultant.pk).first()
            if locked is None or locked.region_id is None:
                return AssignmentResult(False, error="Consultant not found or not assigned to a region")

            active = ConsultantJobAssignment.objects.filter(job=job, status=ConsultantJobAssignment.Status.ACTIVE)
            previous_ids = sorted(set(active.values_list("consultant_id", flat=True)))
            if previous_ids == [locked.pk]:
                logger.debug("Job #%s already assigned to consultant #%s.", job.pk, locked.pk)
                return AssignmentResult(True, consultant_id=locked.pk)

            already_holding = locked.pk in previous_ids
            if not already_holding and locked.current_jobs >= locked.max_jobs:
                return AssignmentResult(
                    False,
                    error=f"Consultant is at capacity: {locked.current_jobs}/{locked.max_jobs} jobs",
                )

            active.exclude(consultant=locked).update(status=ConsultantJobAssignment.Status.INACTIVE)
            _release(cid for cid in previous_ids if cid != locked.pk)

            ConsultantJobAssignment.objects.update_or_create(
                consultant=locked,
                job=job,
                defaults={
                    "status": ConsultantJobAssignment.Status.ACTIVE,
                    "assignment_source": source,
                    "assigned_by": resolve_actor(assigned_by),
                    "assigned_at": self.clock(),
                },
            )
            if not already_holding:
                Consultant.objects.filter(pk=locked.pk).update(current_jobs=F("current_jobs") + 1)

            previous_consultant = job.assigned_consultant_id
            job.assigned_consultant = locked
            job.assignment_source = source
            job.save(update_fields=["assigned_consultant", "assignment_source", "updated_at"])

            self.audit.record(
                "Job", job.pk, "REASSIGN" if previous_ids else "ASSIGN",
                old_value={"consultant_id": previous_consultant},
                new_value={"consultant_id": locked.pk, "source": source},
                performed_by=assigned_by,
            )

        logger.info("Job #%s assigned to consultant #%s (%s).", job.pk, locked.pk, source)
        return AssignmentResult(True, consultant_id=locked.pk)

    @transaction.atomic
    def unassign_job(self, job, performed_by=None) -> AssignmentResult:
        """Deactivate every active assignment of *job* and release the consultants."""
        from jobs.models import Job

        job = Job.objects.select_for_update().get(pk=job.pk)
        active = ConsultantJobAssignment.objects.filter(job=job, status=ConsultantJobAssignment.Status.ACTIVE)
        consultant_ids = sorted(set(active.values_list("consultant_id", flat=True)))
        list(Consultant.objects.select_for_update().filter(pk__in=consultant_ids))

        active.update(status=ConsultantJobAssignment.Status.INACTIVE)
        _release(consultant_ids)

        previous_consultant = job.assigned_consultant_id
        job.assigned_consultant = None
        job.assignment_source = ""
        job.save(update_fields=["assigned_consultant", "assignment_source", "updated_at"])

        if consultant_ids or previous_consultant:
            self.audit.record(
                "Job", job.pk, "UNASSIGN",
                old_value={"consultant_id": previous_consultant},
                new_value={"consultant_id": None},
                performed_by=performed_by,
            )
            logger.info("Job #%s unassigned from consultant(s) %s.", job.pk, consultant_ids)
        return AssignmentResult(True)

    def auto_assign_job(self, job_id) -> AssignmentResult:
        """Assign *job_id* to its best-scoring consultant."""
        from jobs.models import Job

        match = self.matcher.find_best_consultant_for_job(job_id)
        if not match.found:
            logger.info("Auto-assignment of job #%s found no consultant: %s", job_id, match.reason)
            return AssignmentResult(False, error=match.reason or "No suitable consultant found")

        job = Job.objects.get(pk=job_id)
        consultant = Consultant.objects.get(pk=match.consultant_id)
        result = self.assign_job_to_consultant(job, consultant, source=ConsultantJobAssignment.Source.AUTO)
        if result.success and self.notifier is not None:
            self.notifier.notify(
                "job_auto_assigned",
                f"New job assigned: {job.title}",
                f"Job '{job.title}' has been assigned to you. {match.reason}",
                recipients=[consultant.email],
                payload={"job_id": job.pk, "score": round(match.score, 2)},
            )
        return result
