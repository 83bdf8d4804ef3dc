from datetime import timedelta

import pytest
from dateutil.relativedelta import relativedelta

from companies.attribution import (
    AgentNotFoundError,
    AttributionLockedError,
    AttributionService,
    CompanyNotFoundError,
    NoAttributionAssignedError,
)
from companies.models import Company
from core.models import AuditLog


@pytest.fixture
def service(clock, notifier):
    return AttributionService(notifier=notifier, clock=clock)


def lock_company(company, locked_at):
    Company.objects.filter(pk=company.pk).update(attribution_locked=True, attribution_locked_at=locked_at)
    company.refresh_from_db()
    return company


@pytest.mark.django_db
class TestAssignAgent:
    def test_unlocked_company_can_be_reassigned(self, service, company, agent, second_agent):
        result = service.assign_agent(company.pk, second_agent.pk)

        assert result.success
        assert result.changed
        company.refresh_from_db()
        assert company.referred_by == second_agent
        entry = AuditLog.objects.get(entity_type="Company", action="ATTRIBUTION_ASSIGN")
        assert entry.old_value == {"referred_by": agent.pk}
        assert entry.new_value == {"referred_by": second_agent.pk}

    def test_locked_company_rejects_other_agent(self, service, clock, company, agent, second_agent):
        lock_company(company, clock.now - relativedelta(months=3))

        result = service.assign_agent(company.pk, second_agent.pk)

        assert not result.success
        assert isinstance(result.error, AttributionLockedError)
        assert result.reason.startswith(f"Attribution is locked to agent {agent.pk} until ")
        company.refresh_from_db()
        assert company.referred_by == agent

    def test_locked_company_accepts_same_agent_as_noop(self, service, clock, company, agent):
        lock_company(company, clock.now - relativedelta(months=3))
        result = service.assign_agent(company.pk, agent.pk)
        assert result.success
        assert not result.changed

    def test_lapsed_lock_allows_reassignment(self, service, clock, company, second_agent):
        lock_company(company, clock.now - relativedelta(months=13))
        assert service.assign_agent(company.pk, second_agent.pk).success

    def test_unknown_company(self, service, agent):
        result = service.assign_agent(999999, agent.pk)
        assert isinstance(result.error, CompanyNotFoundError)

    def test_unknown_agent(self, service, company):
        result = service.assign_agent(company.pk, 999999)
        assert isinstance(result.error, AgentNotFoundError)


@pytest.mark.django_db
class TestLockAttribution:
    def test_lock_sets_flag_and_timestamp(self, service, clock, notifier, company):
        result = service.lock_attribution(company.pk)

        assert result.success and result.changed
        company.refresh_from_db()
        assert company.attribution_locked
        assert company.attribution_locked_at == clock.now
        assert service.is_locked(company)
        assert notifier.events() == ["attribution_locked"]
        assert AuditLog.objects.filter(entity_type="Company", action="ATTRIBUTION_LOCK").count() == 1

    def test_lock_without_agent_fails(self, service, company):
        Company.objects.filter(pk=company.pk).update(referred_by=None)
        result = service.lock_attribution(company.pk)
        assert not result.success
        assert isinstance(result.error, NoAttributionAssignedError)
        assert result.reason == "Cannot lock attribution: no agent assigned"

    def test_relock_keeps_original_window(self, service, clock, company):
        service.lock_attribution(company.pk)
        first_locked_at = clock.now
        clock.now = clock.now + relativedelta(months=6)

        result = service.lock_attribution(company.pk)

        assert result.success and not result.changed
        company.refresh_from_db()
        assert company.attribution_locked_at == first_locked_at

    def test_lapsed_lock_opens_fresh_window(self, service, clock, company):
        service.lock_attribution(company.pk)
        clock.now = clock.now + relativedelta(months=14)

        result = service.lock_attribution(company.pk)

        assert result.changed
        company.refresh_from_db()
        assert company.attribution_locked_at == clock.now


@pytest.mark.django_db
class TestLockWindow:
    def test_lock_expires_exactly_twelve_months_later(self, service, clock, company):
        service.lock_attribution(company.pk)
        company.refresh_from_db()
        expiry = service.get_lock_expiry_date(company)
        assert expiry == clock.now + relativedelta(months=12)

        clock.now = expiry - timedelta(microseconds=1)
        assert service.is_locked(company)

        clock.now = expiry
        assert not service.is_locked(company)

    def test_window_follows_setting(self, service, clock, company, settings):
        settings.HRM8_ATTRIBUTION_LOCK_MONTHS = 6
        service.lock_attribution(company.pk)
        company.refresh_from_db()
        clock.now = clock.now + relativedelta(months=6)
        assert not service.is_locked(company)

    def test_unlocked_company_has_no_expiry(self, service, company):
        assert service.get_lock_expiry_date(company) is None
        assert not service.is_locked(company)


@pytest.mark.django_db
class TestAttributionQueries:
    def test_has_valid_attribution(self, service, company, agent, second_agent):
        assert service.has_valid_attribution(company.pk, agent.pk)
        assert not service.has_valid_attribution(company.pk, second_agent.pk)
        assert not service.has_valid_attribution(999999, agent.pk)

    def test_get_attribution_snapshot(self, service, clock, company, agent):
        service.lock_attribution(company.pk)
        snapshot = service.get_attribution(company.pk)
        assert snapshot.referred_by_id == agent.pk
        assert snapshot.is_locked
        assert snapshot.lock_expires_at == clock.now + relativedelta(months=12)

    def test_history_lists_company_entries(self, service, company, second_agent):
        service.assign_agent(company.pk, second_agent.pk)
        service.lock_attribution(company.pk)
        actions = list(service.get_attribution_history(company.pk).values_list("action", flat=True))
        assert sorted(actions) == ["ATTRIBUTION_ASSIGN", "ATTRIBUTION_LOCK"]


@pytest.mark.django_db
class TestOverrideAttribution:
    def test_override_bypasses_lock_and_is_audited(self, service, company, second_agent):
        service.lock_attribution(company.pk)

        result = service.override_attribution(
            company.pk, second_agent.pk, performed_by="ops@hrm8.test", reason="Duplicate account merged",
        )

        assert result.success and result.changed
        company.refresh_from_db()
        assert company.referred_by == second_agent
        entry = AuditLog.objects.get(action="ATTRIBUTION_OVERRIDE")
        assert entry.performed_by == "ops@hrm8.test"
        assert entry.new_value["reason"] == "Duplicate account merged"
        assert entry.new_value["locked"] is True

    def test_override_requires_reason(self, service, company, second_agent):
        result = service.override_attribution(company.pk, second_agent.pk, performed_by="ops", reason="  ")
        assert not result.success
        company.refresh_from_db()
        assert company.referred_by_id != second_agent.pk


@pytest.mark.django_db
class TestCompanyModel:
    def test_lock_flag_and_timestamp_must_agree(self, company):
        company.attribution_locked = True
        with pytest.raises(ValueError):
            company.save()
