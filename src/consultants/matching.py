"""Consultant matching for job auto-assignment.

A job is matched against consultants of its own region.  Six gates are
applied in order and the first failure is reported:

1. the job has a region;
2. the consultant works in that region;
3. the consultant is a RECRUITER or CONSULTANT_360;
4. the consultant is ACTIVE;
5. the consultant's availability is not AT_CAPACITY;
6. ``current_jobs < max_jobs``.

Eligible consultants are scored (base 100):

* workload, 0-40: ``40 * (1 - current_jobs / max_jobs)``, zero when ``max_jobs`` is 0;
* industry expertise, +30 when the job category and an expertise entry
  contain one another (case-insensitive);
* success rate, 0-10: ``min(10, success_rate / 10)``;
* speed, 0-10: ``10 * (1 - min(1, average_days_to_fill / 60))``, zero when
  the average is unknown or zero.

Candidates are ranked by score, highest first, then by consultant id.
Nothing here raises on missing data; lookups that fail produce a reason.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from jobs.models import Job

from .models import Consultant

logger = logging.getLogger("hrm8")

BASE_SCORE = 100.0
WORKLOAD_WEIGHT = 40.0
EXPERTISE_BONUS = 30.0
SUCCESS_RATE_CAP = 10.0
SPEED_WEIGHT = 10.0
SPEED_HORIZON_DAYS = 60.0

ASSIGNABLE_ROLES = (Consultant.Role.RECRUITER, Consultant.Role.CONSULTANT_360)


@dataclass(frozen=True)
class AssignmentMatch:
    consultant_id: int | None
    score: float
    reason: str

    @property
    def found(self) -> bool:
        return self.consultant_id is not None


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reason: str = ""


@dataclass
class ScoredConsultant:
    consultant: Consultant
    score: float
    reasons: list[str] = field(default_factory=list)


def region_gate(consultant: Consultant, job: Job) -> str | None:
    if job.region_id is None:
        return "Job has no region assigned"
    if consultant.region_id != job.region_id:
        return f"Region mismatch: consultant in {consultant.region_id}, job in {job.region_id}"
    return None


def role_status_gate(consultant: Consultant) -> str | None:
    if consultant.role not in ASSIGNABLE_ROLES:
        return f"Invalid role: {consultant.role} (must be RECRUITER or CONSULTANT_360)"
    if consultant.status != Consultant.Status.ACTIVE:
        return f"Consultant status is {consultant.status} (must be ACTIVE)"
    return None


def capacity_gate(consultant: Consultant) -> str | None:
    if consultant.availability == Consultant.Availability.AT_CAPACITY:
        return "Consultant is at capacity"
    if consultant.current_jobs >= consultant.max_jobs:
        return f"Consultant at capacity: {consultant.current_jobs}/{consultant.max_jobs} jobs"
    return None


def first_failing_gate(consultant: Consultant, job: Job) -> str | None:
    """Reason of the first gate *consultant* fails for *job*, or ``None``."""
    return region_gate(consultant, job) or role_status_gate(consultant) or capacity_gate(consultant)


def expertise_matches(category: str, expertise) -> bool:
    if not category or not expertise:
        return False
    category = category.lower()
    for entry in expertise:
        entry = str(entry).lower()
        if entry and (entry in category or category in entry):
            return True
    return False


def score_consultant(consultant: Consultant, job: Job) -> ScoredConsultant:
    """Score an eligible consultant. Does not check the gates."""
    score = BASE_SCORE
    reasons = []

    ratio = consultant.current_jobs / consultant.max_jobs if consultant.max_jobs > 0 else 1.0
    score += max(0.0, WORKLOAD_WEIGHT * (1 - ratio))
    reasons.append(f"Workload: {consultant.current_jobs}/{consultant.max_jobs} ({round(ratio * 100)}%)")

    if expertise_matches(job.category, consultant.industry_expertise):
        score += EXPERTISE_BONUS
        reasons.append("Industry expertise match")

    if consultant.success_rate and consultant.success_rate > 0:
        score += min(SUCCESS_RATE_CAP, consultant.success_rate / 10)
        reasons.append(f"Success rate: {consultant.success_rate:g}%")

    days = consultant.average_days_to_fill
    if days and days > 0:
        score += max(0.0, SPEED_WEIGHT * (1 - min(1.0, days / SPEED_HORIZON_DAYS)))
        reasons.append(f"Avg days to fill: {days:g}")

    return ScoredConsultant(consultant=consultant, score=score, reasons=reasons)


class AutoAssignmentService:
    """Rank consultants for a job and explain why none qualifies."""

    def __init__(self, consultants=None, jobs=None):
        self.consultants = consultants if consultants is not None else Consultant.objects.all()
        self.jobs = jobs if jobs is not None else Job.objects.all()

    @staticmethod
    def _lookup(queryset, pk):
        try:
            return queryset.filter(pk=pk).first()
        except (TypeError, ValueError):
            return None

    def _get_job(self, job_id):
        return self._lookup(self.jobs, job_id)

    def rank_consultants(self, job: Job) -> list[ScoredConsultant]:
        """Every consultant passing all gates, best first."""
        if job.region_id is None:
            return []
        candidates = self.consultants.filter(region_id=job.region_id).order_by("pk")
        scored = [
            score_consultant(consultant, job)
            for consultant in candidates
            if first_failing_gate(consultant, job) is None
        ]
        scored.sort(key=lambda item: (-item.score, item.consultant.pk))
        return scored

    def find_best_consultant_for_job(self, job_id) -> AssignmentMatch:
        job = self._get_job(job_id)
        if job is None:
            return AssignmentMatch(None, 0, "Job not found")
        if job.region_id is None:
            return AssignmentMatch(None, 0, "Job has no region assigned")

        in_region = self.consultants.filter(
            region_id=job.region_id,
            role__in=ASSIGNABLE_ROLES,
            status=Consultant.Status.ACTIVE,
        )
        if not in_region.exists():
            return AssignmentMatch(None, 0, "No active consultants found in the job region")

        ranked = self.rank_consultants(job)
        if not ranked:
            return AssignmentMatch(None, 0, "No consultants available (all at capacity)")

        best = ranked[0]
        logger.debug(
            "Job #%s best match: consultant #%s (score %.2f, %d candidate(s)).",
            job.pk, best.consultant.pk, best.score, len(ranked),
        )
        return AssignmentMatch(best.consultant.pk, best.score, f"Best match: {', '.join(best.reasons)}")

    def check_consultant_eligibility(self, consultant_id, job_id) -> EligibilityResult:
        consultant = self._lookup(self.consultants, consultant_id)
        if consultant is None:
            return EligibilityResult(False, "Consultant not found")
        job = self._get_job(job_id)
        if job is None:
            return EligibilityResult(False, "Job not found")
        reason = first_failing_gate(consultant, job)
        if reason:
            return EligibilityResult(False, reason)
        return EligibilityResult(True)
