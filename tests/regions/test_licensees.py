from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db.models import ProtectedError

from core.exceptions import InvalidTransitionError
from core.models import AuditLog
from jobs.models import Job
from regions.models import RegionalLicensee, RegionalRevenue, Settlement
from regions.services import LicenseePatch, LicenseeService


@pytest.fixture
def service():
    return LicenseeService()


@pytest.mark.django_db
class TestLicenseeLifecycle:
    def test_create_is_audited(self, service):
        licensee = service.create_licensee(
            name="Nordic Hiring AB",
            revenue_share_percent=Decimal("20"),
            agreement_start_date=date(2025, 1, 1),
            email="ops@nordichiring.test",
            performed_by="ops@hrm8.test",
        )
        assert licensee.status == RegionalLicensee.Status.ACTIVE
        entry = AuditLog.objects.get(entity_type="RegionalLicensee", action="CREATE")
        assert entry.new_value["revenue_share_percent"] == "20"

    def test_create_rejects_out_of_range_percent(self, service):
        with pytest.raises(ValueError):
            service.create_licensee(name="Bad", revenue_share_percent=Decimal("120"), agreement_start_date=date(2025, 1, 1))

    def test_update_applies_only_given_fields(self, service, licensee):
        updated = service.update_licensee(licensee, LicenseePatch(revenue_share_percent=Decimal("17.50")))
        assert updated.revenue_share_percent == Decimal("17.50")
        assert updated.name == "Pacific Talent Partners"

    def test_suspend_and_reactivate(self, service, licensee):
        suspended = service.suspend_licensee(licensee, reason="Late reporting")
        assert suspended.status == RegionalLicensee.Status.SUSPENDED
        assert AuditLog.objects.get(action="SUSPEND").new_value == {"status": "SUSPENDED", "reason": "Late reporting"}

        reactivated = service.reactivate_licensee(suspended)
        assert reactivated.status == RegionalLicensee.Status.ACTIVE

    def test_reactivate_only_from_suspended(self, service, licensee):
        with pytest.raises(InvalidTransitionError):
            service.reactivate_licensee(licensee)

    def test_terminated_is_final(self, service, licensee):
        terminated = service.terminate_licensee(licensee, reason="Contract breach")
        assert terminated.status == RegionalLicensee.Status.TERMINATED
        with pytest.raises(InvalidTransitionError):
            service.suspend_licensee(terminated)
        with pytest.raises(InvalidTransitionError):
            service.reactivate_licensee(terminated)

    def test_delete_unused_licensee(self, service):
        licensee = service.create_licensee(
            name="Short Lived", revenue_share_percent=Decimal("10"), agreement_start_date=date(2025, 1, 1),
        )
        service.delete_licensee(licensee)
        assert not RegionalLicensee.objects.filter(name="Short Lived").exists()
        assert AuditLog.objects.filter(entity_type="RegionalLicensee", action="DELETE").count() == 1

    def test_delete_with_revenue_is_refused(self, service, licensee, region):
        RegionalRevenue.objects.create(
            region=region, licensee=licensee, period_start=date(2025, 4, 1), period_end=date(2025, 4, 30),
            total_revenue=Decimal("100.00"), licensee_share=Decimal("15.00"), hrm8_share=Decimal("85.00"),
        )
        with pytest.raises(ProtectedError):
            service.delete_licensee(licensee)


@pytest.mark.django_db
class TestMonthCloseTask:
    def test_task_waits_for_first_of_month(self, monkeypatch):
        from regions.tasks import close_previous_month_revenue

        monkeypatch.setattr("regions.tasks.timezone.localdate", lambda: date(2025, 6, 15))
        assert close_previous_month_revenue() == {"skipped": True}

    def test_task_closes_and_settles_previous_month(self, monkeypatch, company, region, licensee):
        from regions.tasks import close_previous_month_revenue

        Job.objects.create(
            title="Paid", company=company, region=region, payment_status=Job.PaymentStatus.PAID,
            payment_amount=Decimal("2000.00"), payment_completed_at=datetime(2025, 5, 20, tzinfo=dt_timezone.utc),
        )
        monkeypatch.setattr("regions.tasks.timezone.localdate", lambda: date(2025, 6, 1))

        summary = close_previous_month_revenue()

        assert summary["month"] == "2025-05"
        assert summary["processed"] == 1
        assert summary["exit_code"] == 0
        # Fresh records are PENDING, so nothing is ready to settle yet.
        assert summary["settlements"] == 0
        assert not Settlement.objects.exists()


@pytest.mark.django_db
class TestCloseMonthlyRevenueCommand:
    def test_closes_requested_month(self, capsys, company, region):
        Job.objects.create(
            title="Paid", company=company, region=region, payment_status=Job.PaymentStatus.PAID,
            payment_amount=Decimal("500.00"), payment_completed_at=datetime(2025, 3, 9, tzinfo=dt_timezone.utc),
        )
        call_command("close_monthly_revenue", "--month", "2025-03")
        assert "2025-03: 1 region(s) processed" in capsys.readouterr().out
        assert RegionalRevenue.objects.get().total_revenue == Decimal("500.00")

    def test_invalid_month(self):
        with pytest.raises(CommandError):
            call_command("close_monthly_revenue", "--month", "March")
