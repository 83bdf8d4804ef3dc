from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.core import mail

from core.audit import AuditTrail, resolve_actor
from core.exceptions import InvalidTransitionError
from core.models import AuditLog
from core.money import round2, to_decimal
from core.notifications import Notifier
from core.periods import add_months, month_bounds, months_between, parse_period, previous_month


class TestMoney:
    def test_round2_rounds_half_up(self):
        assert round2("0.125") == Decimal("0.13")
        assert round2("0.124") == Decimal("0.12")
        assert round2(Decimal("199")) == Decimal("199.00")

    def test_to_decimal_avoids_float_drift(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal(None) == Decimal("0.00")


class TestPeriods:
    def test_months_between_counts_whole_months(self):
        start = datetime(2024, 3, 15, tzinfo=dt_timezone.utc)
        assert months_between(datetime(2025, 3, 14, tzinfo=dt_timezone.utc), start) == 11
        assert months_between(datetime(2025, 3, 15, tzinfo=dt_timezone.utc), start) == 12

    def test_add_months_clamps_to_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2024, 2, 29), 12) == date(2025, 2, 28)

    def test_month_bounds(self):
        assert month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_previous_month_crosses_year(self):
        assert previous_month(date(2025, 1, 1)) == date(2024, 12, 1)

    def test_parse_period(self):
        assert parse_period("2025-04") == date(2025, 4, 1)
        with pytest.raises(ValueError):
            parse_period("April 2025")


class TestInvalidTransitionError:
    def test_message_names_both_states(self):
        exc = InvalidTransitionError("Commission #4", "PAID", "CANCELLED", "Only pending commissions can be cancelled.")
        assert str(exc) == "Commission #4: cannot move from PAID to CANCELLED. Only pending commissions can be cancelled."
        assert isinstance(exc, ValueError)


@pytest.mark.django_db
class TestAuditTrail:
    def test_record_appends_entry(self):
        entry = AuditTrail().record(
            "Company", 7, "ATTRIBUTION_LOCK",
            old_value={"attribution_locked_at": None},
            new_value={"referred_by": 3},
            performed_by="ops@hrm8.test",
        )
        assert AuditLog.objects.count() == 1
        assert entry.entity_id == "7"
        assert entry.performed_by == "ops@hrm8.test"
        assert entry.performed_at is not None

    def test_resolve_actor_defaults_to_system(self):
        assert resolve_actor() == "system"

    def test_resolve_actor_formats_model_instances(self, staff_user):
        assert resolve_actor(staff_user) == f"user:{staff_user.pk}"


class TestNotifier:
    def test_sends_to_configured_operators(self, settings):
        settings.HRM8_NOTIFICATION_RECIPIENTS = ["ops@hrm8.test"]
        sent = Notifier().notify("compliance_alerts", "2 alerts", "Details", payload={"critical": 1})
        assert sent == 1
        assert mail.outbox[0].subject == "[HRM8] 2 alerts"
        assert "critical: 1" in mail.outbox[0].body

    def test_skips_without_recipients(self, settings):
        settings.HRM8_NOTIFICATION_RECIPIENTS = []
        assert Notifier().notify("commission_paid", "Paid", "Body") == 0
        assert mail.outbox == []

    def test_delivery_failure_is_swallowed(self, monkeypatch):
        def broken(**kwargs):
            raise ConnectionError("smtp down")

        monkeypatch.setattr("core.notifications.send_mail", broken)
        assert Notifier().notify("commission_paid", "Paid", "Body", recipients=["a@hrm8.test"]) == 0
