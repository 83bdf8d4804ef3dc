from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from core.exceptions import InvalidTransitionError
from core.models import AuditLog
from jobs.models import Job
from regions.exceptions import LedgerIntegrityError, RevenuePeriodOverlapError
from regions.ledger import RegionalRevenueLedger, RevenuePatch, compute_split
from regions.models import RegionalLicensee, RegionalRevenue, Settlement


@pytest.fixture
def ledger(clock, notifier):
    return RegionalRevenueLedger(notifier=notifier, clock=clock)


def paid_job(company, region, amount, paid_at, title="Paid job"):
    return Job.objects.create(
        title=title,
        company=company,
        region=region,
        payment_status=Job.PaymentStatus.PAID,
        payment_amount=Decimal(amount),
        payment_completed_at=paid_at,
    )


class TestComputeSplit:
    def test_fifteen_percent_of_hundred_thousand(self):
        assert compute_split(Decimal("100000"), revenue_share_percent=Decimal("15")) == (
            Decimal("15000.00"), Decimal("85000.00"),
        )

    @pytest.mark.parametrize("total", ["0", "0.01", "1", "999.99", "12345.67", "100000.03"])
    @pytest.mark.parametrize("percent", ["0", "0.5", "12.5", "15", "33.33", "66.67", "99.99", "100"])
    def test_shares_always_sum_to_total(self, total, percent):
        licensee, hrm8 = compute_split(Decimal(total), revenue_share_percent=Decimal(percent))
        assert licensee + hrm8 == Decimal(total)
        assert licensee >= 0 and hrm8 >= 0

    def test_region_without_licensee_keeps_everything(self):
        assert compute_split(Decimal("500"), revenue_share_percent=Decimal("20"), has_licensee=False) == (
            Decimal("0.00"), Decimal("500.00"),
        )

    def test_explicit_pair_must_balance(self):
        with pytest.raises(LedgerIntegrityError):
            compute_split(Decimal("100"), licensee_share=Decimal("20"), hrm8_share=Decimal("70"))

    def test_explicit_licensee_share_derives_remainder(self):
        assert compute_split(Decimal("100"), licensee_share=Decimal("20")) == (Decimal("20.00"), Decimal("80.00"))

    def test_explicit_hrm8_share_derives_licensee_share(self):
        assert compute_split(Decimal("1000"), revenue_share_percent=Decimal("15"), hrm8_share=Decimal("900")) == (
            Decimal("100.00"), Decimal("900.00"),
        )

    def test_hrm8_share_above_total_is_rejected(self):
        with pytest.raises(LedgerIntegrityError):
            compute_split(Decimal("100"), hrm8_share=Decimal("120"))

    def test_licensee_share_above_total_is_rejected(self):
        with pytest.raises(LedgerIntegrityError):
            compute_split(Decimal("100"), licensee_share=Decimal("120"))

    def test_percent_out_of_range(self):
        with pytest.raises(ValueError):
            compute_split(Decimal("100"), revenue_share_percent=Decimal("101"))


@pytest.mark.django_db
class TestCreateAndUpdate:
    def test_create_uses_licensee_percent(self, ledger, region, licensee):
        revenue = ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("100000"))

        assert revenue.licensee == licensee
        assert revenue.licensee_share == Decimal("15000.00")
        assert revenue.hrm8_share == Decimal("85000.00")
        assert revenue.status == RegionalRevenue.Status.PENDING
        assert AuditLog.objects.filter(entity_type="RegionalRevenue", action="CREATE").count() == 1

    def test_hrm8_owned_region(self, ledger, other_region):
        revenue = ledger.create_revenue(other_region, date(2025, 4, 1), date(2025, 4, 30), Decimal("800"))
        assert revenue.licensee is None
        assert revenue.licensee_share == Decimal("0.00")
        assert revenue.hrm8_share == Decimal("800.00")

    def test_overlapping_period_is_rejected(self, ledger, region):
        ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("100"))
        with pytest.raises(RevenuePeriodOverlapError):
            ledger.create_revenue(region, date(2025, 4, 15), date(2025, 5, 14), Decimal("100"))

    def test_adjacent_periods_are_allowed(self, ledger, region):
        ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("100"))
        ledger.create_revenue(region, date(2025, 5, 1), date(2025, 5, 31), Decimal("100"))
        assert RegionalRevenue.objects.count() == 2

    def test_inverted_period_is_rejected(self, ledger, region):
        with pytest.raises(ValueError):
            ledger.create_revenue(region, date(2025, 4, 30), date(2025, 4, 1), Decimal("100"))

    def test_update_total_recomputes_split(self, ledger, region):
        revenue = ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("100000"))

        revenue = ledger.update_revenue(revenue, RevenuePatch(total_revenue=Decimal("2000")))

        assert revenue.licensee_share == Decimal("300.00")
        assert revenue.hrm8_share == Decimal("1700.00")
        entry = AuditLog.objects.get(entity_type="RegionalRevenue", action="UPDATE")
        assert entry.old_value["total_revenue"] == "100000.00"
        assert entry.new_value["total_revenue"] == "2000.00"

    def test_update_keeps_explicit_hrm8_share(self, ledger, region):
        revenue = ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("1000"))

        revenue = ledger.update_revenue(revenue, RevenuePatch(hrm8_share=Decimal("900")))

        revenue.refresh_from_db()
        assert revenue.licensee_share == Decimal("100.00")
        assert revenue.hrm8_share == Decimal("900.00")

    def test_hrm8_owned_region_rejects_partial_hrm8_share(self, ledger, other_region):
        revenue = ledger.create_revenue(other_region, date(2025, 4, 1), date(2025, 4, 30), Decimal("800"))
        with pytest.raises(LedgerIntegrityError):
            ledger.update_revenue(revenue, RevenuePatch(hrm8_share=Decimal("700")))

    def test_paid_revenue_is_immutable(self, ledger, region):
        revenue = ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("100"))
        ledger.mark_paid(ledger.confirm(revenue))
        with pytest.raises(InvalidTransitionError):
            ledger.update_revenue(revenue, RevenuePatch(total_revenue=Decimal("1")))

    def test_model_refuses_unbalanced_save(self, ledger, region):
        revenue = ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("100"))
        revenue.hrm8_share = Decimal("1.00")
        with pytest.raises(LedgerIntegrityError):
            revenue.save()


@pytest.mark.django_db
class TestRevenueStateMachine:
    def test_pending_confirmed_paid(self, ledger, clock, region):
        revenue = ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("100"))

        revenue = ledger.confirm(revenue)
        assert revenue.status == RegionalRevenue.Status.CONFIRMED
        assert revenue.paid_at is None

        revenue = ledger.mark_paid(revenue)
        assert revenue.status == RegionalRevenue.Status.PAID
        assert revenue.paid_at == clock.now

    def test_confirm_twice_is_noop(self, ledger, region):
        revenue = ledger.confirm(ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("100")))
        ledger.confirm(revenue)
        assert AuditLog.objects.filter(entity_type="RegionalRevenue", action="STATUS_CHANGE").count() == 1

    def test_pending_cannot_skip_to_paid(self, ledger, region):
        revenue = ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("100"))
        with pytest.raises(InvalidTransitionError):
            ledger.mark_paid(revenue)

    def test_paid_cannot_be_confirmed(self, ledger, region):
        revenue = ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("100"))
        ledger.mark_paid(ledger.confirm(revenue))
        with pytest.raises(InvalidTransitionError):
            ledger.confirm(revenue)


@pytest.mark.django_db
class TestMonthClose:
    def test_close_month_sums_paid_jobs(self, ledger, company, region):
        paid_job(company, region, "1990.00", datetime(2025, 5, 3, tzinfo=dt_timezone.utc))
        paid_job(company, region, "5990.00", datetime(2025, 5, 31, 23, tzinfo=dt_timezone.utc))
        paid_job(company, region, "9990.00", datetime(2025, 6, 1, tzinfo=dt_timezone.utc))

        revenue = ledger.close_month(region, date(2025, 5, 1))

        assert revenue.period_start == date(2025, 5, 1)
        assert revenue.period_end == date(2025, 5, 31)
        assert revenue.total_revenue == Decimal("7980.00")
        assert revenue.licensee_share == Decimal("1197.00")
        assert revenue.hrm8_share == Decimal("6783.00")

    def test_month_without_revenue_is_skipped(self, ledger, region):
        assert ledger.close_month(region, date(2025, 5, 1)) is None
        assert not RegionalRevenue.objects.exists()

    def test_rerun_updates_pending_record(self, ledger, company, region):
        paid_job(company, region, "1000.00", datetime(2025, 5, 3, tzinfo=dt_timezone.utc))
        first = ledger.close_month(region, date(2025, 5, 1))
        paid_job(company, region, "1000.00", datetime(2025, 5, 4, tzinfo=dt_timezone.utc), title="Late")

        second = ledger.close_month(region, date(2025, 5, 1))

        assert second.pk == first.pk
        assert second.total_revenue == Decimal("2000.00")

    def test_suspended_licensee_earns_no_share(self, ledger, company, region, licensee):
        RegionalLicensee.objects.filter(pk=licensee.pk).update(status=RegionalLicensee.Status.SUSPENDED)
        paid_job(company, region, "1000.00", datetime(2025, 5, 3, tzinfo=dt_timezone.utc))

        revenue = ledger.close_month(region, date(2025, 5, 1))

        assert revenue.licensee_share == Decimal("0.00")
        assert revenue.hrm8_share == Decimal("1000.00")

    def test_close_all_regions_isolates_failures(self, ledger, company, region, other_region, monkeypatch):
        paid_job(company, region, "1000.00", datetime(2025, 5, 3, tzinfo=dt_timezone.utc))
        original = ledger.close_month

        def flaky(target, month):
            if target.pk == other_region.pk:
                raise RuntimeError("lock timeout")
            return original(target, month)

        monkeypatch.setattr(ledger, "close_month", flaky)
        result = ledger.close_all_regions_for_month(date(2025, 5, 1))

        assert result.processed == 1
        assert result.errors == ["Region Auckland: lock timeout"]
        assert result.exit_code == 1
        assert result.as_dict()["month"] == "2025-05"


@pytest.mark.django_db
class TestSettlements:
    def test_generate_bundles_confirmed_revenue(self, ledger, region, licensee):
        april = ledger.confirm(ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("1000")))
        may = ledger.confirm(ledger.create_revenue(region, date(2025, 5, 1), date(2025, 5, 31), Decimal("3000")))
        ledger.create_revenue(region, date(2025, 6, 1), date(2025, 6, 30), Decimal("5000"))

        result = ledger.generate_settlement(licensee, date(2025, 6, 1))

        assert result.success
        assert result.revenue_records_included == 2
        settlement = result.settlement
        assert settlement.total_revenue == Decimal("4000.00")
        assert settlement.licensee_share == Decimal("600.00")
        assert settlement.hrm8_share == Decimal("3400.00")
        assert settlement.period_start == date(2025, 4, 1)
        assert settlement.period_end == date(2025, 5, 31)
        assert set(settlement.revenues.values_list("pk", flat=True)) == {april.pk, may.pk}

    def test_nothing_to_settle(self, ledger, licensee):
        result = ledger.generate_settlement(licensee, date(2025, 6, 1))
        assert not result.success
        assert result.error == "No confirmed revenue to settle"

    def test_revenue_is_settled_once(self, ledger, region, licensee):
        ledger.confirm(ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("1000")))
        assert ledger.generate_settlement(licensee, date(2025, 4, 1)).success
        assert not ledger.generate_settlement(licensee, date(2025, 4, 1)).success

    def test_mark_settlement_paid_pays_revenues(self, ledger, clock, notifier, region, licensee):
        revenue = ledger.confirm(ledger.create_revenue(region, date(2025, 4, 1), date(2025, 4, 30), Decimal("1000")))
        settlement = ledger.generate_settlement(licensee, date(2025, 4, 1)).settlement

        settlement = ledger.mark_settlement_paid(settlement, "WIRE-42")

        assert settlement.status == Settlement.Status.PAID
        assert settlement.paid_at == clock.now
        revenue.refresh_from_db()
        assert revenue.status == RegionalRevenue.Status.PAID
        assert notifier.sent[0]["recipients"] == [licensee.email]
        with pytest.raises(InvalidTransitionError):
            ledger.mark_settlement_paid(settlement, "WIRE-43")
