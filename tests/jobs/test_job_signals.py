import pytest

from jobs.models import Job


@pytest.fixture
def queued(monkeypatch):
    calls = []
    monkeypatch.setattr("consultants.tasks.auto_assign_job_task.delay", lambda job_id: calls.append(job_id))
    return calls


@pytest.mark.django_db
class TestAutoAssignOnCreate:
    def test_new_job_queues_auto_assignment_after_commit(
        self, settings, company, region, queued, django_capture_on_commit_callbacks,
    ):
        settings.HRM8_AUTO_ASSIGN_ON_JOB_CREATE = True

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            job = Job.objects.create(title="Data Analyst", company=company, region=region)

        assert len(callbacks) == 1
        assert queued == [job.pk]

    def test_disabled_setting_queues_nothing(self, settings, company, region, queued, django_capture_on_commit_callbacks):
        settings.HRM8_AUTO_ASSIGN_ON_JOB_CREATE = False
        with django_capture_on_commit_callbacks(execute=True):
            Job.objects.create(title="Data Analyst", company=company, region=region)
        assert queued == []

    def test_job_without_region_is_skipped(self, settings, company, queued, django_capture_on_commit_callbacks):
        settings.HRM8_AUTO_ASSIGN_ON_JOB_CREATE = True
        with django_capture_on_commit_callbacks(execute=True):
            Job.objects.create(title="Remote", company=company)
        assert queued == []

    def test_updates_do_not_requeue(self, settings, job, queued, django_capture_on_commit_callbacks):
        settings.HRM8_AUTO_ASSIGN_ON_JOB_CREATE = True
        with django_capture_on_commit_callbacks(execute=True):
            job.title = "Staff Backend Engineer"
            job.save()
        assert queued == []

    def test_broker_failure_does_not_break_job_creation(
        self, settings, monkeypatch, company, region, django_capture_on_commit_callbacks,
    ):
        settings.HRM8_AUTO_ASSIGN_ON_JOB_CREATE = True

        def broken(job_id):
            raise ConnectionError("broker unavailable")

        monkeypatch.setattr("consultants.tasks.auto_assign_job_task.delay", broken)
        with django_capture_on_commit_callbacks(execute=True):
            job = Job.objects.create(title="Data Analyst", company=company, region=region)
        assert Job.objects.filter(pk=job.pk).exists()


@pytest.mark.django_db
class TestAutoAssignTask:
    def test_task_assigns_best_consultant(self, job, recruiter):
        from consultants.tasks import auto_assign_job_task

        outcome = auto_assign_job_task(job.pk)

        assert outcome == {"success": True, "consultant_id": recruiter.pk, "error": ""}
        job.refresh_from_db()
        assert job.assigned_consultant == recruiter
