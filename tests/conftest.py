from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from companies.models import Company
from consultants.models import Consultant
from jobs.models import Job
from regions.models import Region, RegionalLicensee

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=dt_timezone.utc)


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, event, subject, message, recipients=None, payload=None):
        self.sent.append({
            "event": event,
            "subject": subject,
            "message": message,
            "recipients": recipients,
            "payload": payload,
        })
        return 1

    def events(self):
        return [n["event"] for n in self.sent]


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(
        username="operator",
        email="operator@hrm8.test",
        password="testpass123",
        is_staff=True,
    )


@pytest.fixture
def staff_client(client, staff_user):
    client.force_login(staff_user)
    return client


@pytest.fixture
def licensee(db):
    return RegionalLicensee.objects.create(
        name="Pacific Talent Partners",
        legal_entity_name="Pacific Talent Partners Pty Ltd",
        email="finance@pacifictalent.test",
        revenue_share_percent=Decimal("15.00"),
        agreement_start_date=date(2024, 1, 1),
        agreement_end_date=date(2026, 12, 31),
    )


@pytest.fixture
def region(licensee):
    return Region.objects.create(name="Sydney", code="AU-SYD", country="Australia", licensee=licensee)


@pytest.fixture
def other_region(db):
    return Region.objects.create(name="Auckland", code="NZ-AKL", country="New Zealand")


@pytest.fixture
def agent(region):
    return Consultant.objects.create(
        first_name="Alice",
        last_name="Agent",
        email="alice@hrm8.test",
        role=Consultant.Role.SALES_AGENT,
        region=region,
        default_commission_rate=Decimal("0.1000"),
    )


@pytest.fixture
def second_agent(region):
    return Consultant.objects.create(
        first_name="Bob",
        last_name="Agent",
        email="bob@hrm8.test",
        role=Consultant.Role.SALES_AGENT,
        region=region,
    )


@pytest.fixture
def recruiter(region):
    return Consultant.objects.create(
        first_name="Rita",
        last_name="Recruiter",
        email="rita@hrm8.test",
        role=Consultant.Role.RECRUITER,
        region=region,
        current_jobs=2,
        max_jobs=10,
        industry_expertise=["Technology", "Finance"],
        success_rate=80.0,
        average_days_to_fill=30.0,
    )


@pytest.fixture
def company(region, agent):
    return Company.objects.create(name="Acme Corp", domain="acme.test", region=region, referred_by=agent)


@pytest.fixture
def job(company, region):
    return Job.objects.create(
        title="Senior Backend Engineer",
        company=company,
        region=region,
        category="Technology",
        service_package=Job.ServicePackage.SHORTLISTING,
    )
