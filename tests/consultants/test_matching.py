import pytest

from consultants.matching import (
    AutoAssignmentService,
    expertise_matches,
    first_failing_gate,
    score_consultant,
)
from consultants.models import Consultant
from jobs.models import Job


def make_consultant(region, email, **kwargs):
    defaults = {
        "first_name": email.split("@")[0].title(),
        "role": Consultant.Role.RECRUITER,
        "region": region,
        "max_jobs": 10,
    }
    defaults.update(kwargs)
    return Consultant.objects.create(email=email, **defaults)


class TestScoring:
    def test_full_score_breakdown(self):
        consultant = Consultant(
            current_jobs=2, max_jobs=10, industry_expertise=["Technology"],
            success_rate=80.0, average_days_to_fill=30.0,
        )
        job = Job(category="technology")
        scored = score_consultant(consultant, job)
        # 100 base + 32 workload + 30 expertise + 8 success + 5 speed
        assert scored.score == pytest.approx(175.0)
        assert "Industry expertise match" in scored.reasons

    def test_zero_max_jobs_gives_no_workload_bonus(self):
        consultant = Consultant(current_jobs=0, max_jobs=0, success_rate=0)
        assert score_consultant(consultant, Job(category="")).score == pytest.approx(100.0)

    def test_success_rate_is_capped(self):
        consultant = Consultant(current_jobs=10, max_jobs=10, success_rate=150.0)
        assert score_consultant(consultant, Job()).score == pytest.approx(110.0)

    def test_unknown_or_slow_speed_adds_nothing(self):
        unknown = Consultant(current_jobs=10, max_jobs=10, success_rate=0, average_days_to_fill=None)
        slow = Consultant(current_jobs=10, max_jobs=10, success_rate=0, average_days_to_fill=90.0)
        assert score_consultant(unknown, Job()).score == pytest.approx(100.0)
        assert score_consultant(slow, Job()).score == pytest.approx(100.0)

    @pytest.mark.parametrize("category, expertise, expected", [
        ("Software Engineering", ["engineering"], True),
        ("Nursing", ["Information Technology"], False),
        ("it", ["IT"], True),
        ("Finance", [], False),
        ("", ["Finance"], False),
    ])
    def test_expertise_matches_both_directions(self, category, expertise, expected):
        assert expertise_matches(category, expertise) is expected


@pytest.mark.django_db
class TestGates:
    def test_gate_order_reports_first_failure(self, region, other_region, job):
        consultant = make_consultant(
            other_region, "far@hrm8.test", role=Consultant.Role.SALES_AGENT, status=Consultant.Status.INACTIVE,
        )
        assert first_failing_gate(consultant, job).startswith("Region mismatch")

        consultant.region = region
        assert first_failing_gate(consultant, job) == "Invalid role: SALES_AGENT (must be RECRUITER or CONSULTANT_360)"

        consultant.role = Consultant.Role.CONSULTANT_360
        assert first_failing_gate(consultant, job) == "Consultant status is INACTIVE (must be ACTIVE)"

        consultant.status = Consultant.Status.ACTIVE
        consultant.availability = Consultant.Availability.AT_CAPACITY
        assert first_failing_gate(consultant, job) == "Consultant is at capacity"

        consultant.availability = Consultant.Availability.AVAILABLE
        consultant.current_jobs = consultant.max_jobs
        assert first_failing_gate(consultant, job) == "Consultant at capacity: 10/10 jobs"

        consultant.current_jobs = 0
        assert first_failing_gate(consultant, job) is None


@pytest.mark.django_db
class TestFindBestConsultant:
    def test_full_consultant_is_never_a_candidate(self, region, job):
        full = make_consultant(
            region, "full@hrm8.test", current_jobs=5, max_jobs=5,
            industry_expertise=["Technology"], success_rate=100.0, average_days_to_fill=1.0,
        )
        free = make_consultant(region, "free@hrm8.test", current_jobs=4, max_jobs=5)
        service = AutoAssignmentService()

        ranked = [s.consultant.pk for s in service.rank_consultants(job)]
        assert full.pk not in ranked
        assert free.pk in ranked
        assert service.find_best_consultant_for_job(job.pk).consultant_id == free.pk

    def test_every_consultant_passing_gates_is_ranked(self, region, other_region, job):
        eligible = [make_consultant(region, f"ok{i}@hrm8.test", current_jobs=i) for i in range(3)]
        make_consultant(region, "inactive@hrm8.test", status=Consultant.Status.INACTIVE)
        make_consultant(region, "agent@hrm8.test", role=Consultant.Role.SALES_AGENT)
        make_consultant(other_region, "elsewhere@hrm8.test")

        ranked = AutoAssignmentService().rank_consultants(job)

        assert {s.consultant.pk for s in ranked} == {c.pk for c in eligible}
        assert [s.consultant.pk for s in ranked] == [c.pk for c in eligible]

    def test_equal_scores_rank_by_lowest_id(self, region, job):
        first = make_consultant(region, "first@hrm8.test")
        second = make_consultant(region, "second@hrm8.test")
        match = AutoAssignmentService().find_best_consultant_for_job(job.pk)
        assert match.consultant_id == first.pk
        assert match.consultant_id < second.pk

    def test_best_match_prefers_expertise(self, region, job, recruiter):
        make_consultant(region, "generalist@hrm8.test", current_jobs=0)
        match = AutoAssignmentService().find_best_consultant_for_job(job.pk)
        assert match.consultant_id == recruiter.pk
        assert match.reason.startswith("Best match: ")
        assert "Industry expertise match" in match.reason

    def test_reasons_when_nobody_matches(self, region, company, job):
        service = AutoAssignmentService()
        assert service.find_best_consultant_for_job(999999).reason == "Job not found"

        no_region = Job.objects.create(title="Remote", company=company)
        assert service.find_best_consultant_for_job(no_region.pk).reason == "Job has no region assigned"

        assert service.find_best_consultant_for_job(job.pk).reason == "No active consultants found in the job region"

        make_consultant(region, "busy@hrm8.test", current_jobs=10, max_jobs=10)
        match = service.find_best_consultant_for_job(job.pk)
        assert not match.found
        assert match.reason == "No consultants available (all at capacity)"


@pytest.mark.django_db
class TestEligibility:
    def test_eligible_consultant(self, recruiter, job):
        result = AutoAssignmentService().check_consultant_eligibility(recruiter.pk, job.pk)
        assert result.eligible
        assert result.reason == ""

    def test_not_found_reasons(self, recruiter, job):
        service = AutoAssignmentService()
        assert service.check_consultant_eligibility(999999, job.pk).reason == "Consultant not found"
        assert service.check_consultant_eligibility(recruiter.pk, 999999).reason == "Job not found"
        assert service.check_consultant_eligibility("abc", job.pk).reason == "Consultant not found"

    def test_ineligible_consultant_is_never_best(self, region, job):
        suspended = make_consultant(
            region, "star@hrm8.test", status=Consultant.Status.SUSPENDED,
            industry_expertise=["Technology"], success_rate=100.0,
        )
        make_consultant(region, "plain@hrm8.test", current_jobs=9)
        service = AutoAssignmentService()

        assert not service.check_consultant_eligibility(suspended.pk, job.pk).eligible
        assert service.find_best_consultant_for_job(job.pk).consultant_id != suspended.pk
