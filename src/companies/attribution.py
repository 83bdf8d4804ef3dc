"""Sales attribution for companies.

``Company.referred_by`` names the consultant credited for a company's
business.  Once locked, the attribution is protected from reassignment for
``HRM8_ATTRIBUTION_LOCK_MONTHS`` calendar months: the lock holds while
``now < attribution_locked_at + 12 months`` and lapses exactly at that
instant.

Locking is first-lock-wins.  Locking an already locked company changes
nothing; a lapsed lock is replaced by a fresh window.

Business-rule failures are returned on :class:`AttributionResult`, never
raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.audit import AuditTrail
from core.models import AuditLog
from core.periods import add_months

from .models import Company

logger = logging.getLogger("hrm8")


class AttributionError(Exception):
    """Base class of attribution rule violations."""


class AttributionLockedError(AttributionError):
    pass


class NoAttributionAssignedError(AttributionError):
    pass


class CompanyNotFoundError(AttributionError):
    pass


class AgentNotFoundError(AttributionError):
    pass


@dataclass(frozen=True)
class AttributionResult:
    success: bool
    error: AttributionError | None = None
    changed: bool = False

    @property
    def reason(self) -> str:
        return str(self.error) if self.error else ""


@dataclass(frozen=True)
class AttributionSnapshot:
    company_id: int
    referred_by_id: int | None
    attribution_locked: bool
    attribution_locked_at: datetime | None
    lock_expires_at: datetime | None
    is_locked: bool


def _pk(obj):
    return getattr(obj, "pk", obj)


def lock_months() -> int:
    return getattr(settings, "HRM8_ATTRIBUTION_LOCK_MONTHS", 12)


class AttributionService:

    def __init__(self, audit=None, notifier=None, clock=timezone.now):
        self.audit = audit or AuditTrail()
        self.notifier = notifier
        self.clock = clock

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def get_lock_expiry_date(self, company: Company) -> datetime | None:
        if not company.attribution_locked_at:
            return None
        return add_months(company.attribution_locked_at, lock_months())

    def is_locked(self, company: Company) -> bool:
        """True while the lock flag is set and the window has not elapsed."""
        if not company.attribution_locked or not company.attribution_locked_at:
            return False
        return self.clock() < self.get_lock_expiry_date(company)

    def has_valid_attribution(self, company_id, agent_id) -> bool:
        company = Company.objects.filter(pk=_pk(company_id)).first()
        if company is None:
            return False
        agent_id = _pk(agent_id)
        if self.is_locked(company) and company.referred_by_id != agent_id:
            return False
        return company.referred_by_id is not None and company.referred_by_id == agent_id

    def get_attribution(self, company_id) -> AttributionSnapshot | None:
        company = Company.objects.filter(pk=_pk(company_id)).first()
        if company is None:
            return None
        return AttributionSnapshot(
            company_id=company.pk,
            referred_by_id=company.referred_by_id,
            attribution_locked=company.attribution_locked,
            attribution_locked_at=company.attribution_locked_at,
            lock_expires_at=self.get_lock_expiry_date(company),
            is_locked=self.is_locked(company),
        )

    def get_attribution_history(self, company_id):
        return AuditLog.objects.filter(entity_type="Company", entity_id=str(_pk(company_id)))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _locked_company(self, company_id):
        return Company.objects.select_for_update().filter(pk=_pk(company_id)).first()

    def _agent_exists(self, agent_id) -> bool:
        from consultants.models import Consultant

        return Consultant.objects.filter(pk=agent_id).exists()

    @transaction.atomic
    def assign_agent(self, company_id, agent_id, performed_by=None) -> AttributionResult:
        """Credit *agent_id* for the company unless another agent holds a live lock."""
        company = self._locked_company(company_id)
        if company is None:
            return AttributionResult(False, CompanyNotFoundError("Company not found"))
        agent_id = _pk(agent_id)

        if self.is_locked(company) and company.referred_by_id != agent_id:
            expiry = self.get_lock_expiry_date(company)
            return AttributionResult(
                False,
                AttributionLockedError(
                    f"Attribution is locked to agent {company.referred_by_id} until {expiry:%Y-%m-%d}"
                ),
            )
        if company.referred_by_id == agent_id:
            return AttributionResult(True)
        if not self._agent_exists(agent_id):
            return AttributionResult(False, AgentNotFoundError(f"Agent {agent_id} not found"))

        previous = company.referred_by_id
        company.referred_by_id = agent_id
        company.save(update_fields=["referred_by", "updated_at"])
        self.audit.record(
            "Company", company.pk, "ATTRIBUTION_ASSIGN",
            old_value={"referred_by": previous},
            new_value={"referred_by": agent_id},
            performed_by=performed_by,
        )
        logger.info("Company #%s attributed to agent #%s (was %s).", company.pk, agent_id, previous)
        return AttributionResult(True, changed=True)

    def lock_attribution(self, company_id, performed_by=None) -> AttributionResult:
        with transaction.atomic():
            company = self._locked_company(company_id)
            if company is None:
                return AttributionResult(False, CompanyNotFoundError("Company not found"))
            if company.referred_by_id is None:
                return AttributionResult(
                    False, NoAttributionAssignedError("Cannot lock attribution: no agent assigned"),
                )
            if self.is_locked(company):
                logger.debug("Company #%s already locked; window unchanged.", company.pk)
                return AttributionResult(True)

            previous_locked_at = company.attribution_locked_at
            company.attribution_locked = True
            company.attribution_locked_at = self.clock()
            company.save(update_fields=["attribution_locked", "attribution_locked_at", "updated_at"])
            expiry = self.get_lock_expiry_date(company)
            self.audit.record(
                "Company", company.pk, "ATTRIBUTION_LOCK",
                old_value={
                    "attribution_locked_at": previous_locked_at.isoformat() if previous_locked_at else None,
                },
                new_value={
                    "referred_by": company.referred_by_id,
                    "attribution_locked_at": company.attribution_locked_at.isoformat(),
                    "expires_at": expiry.isoformat(),
                },
                performed_by=performed_by,
            )

        logger.info("Company #%s attribution locked to agent #%s until %s.", company.pk, company.referred_by_id, expiry)
        if self.notifier is not None:
            self.notifier.notify(
                "attribution_locked",
                f"Attribution locked: {company.name}",
                f"{company.name} is attributed to agent #{company.referred_by_id} until {expiry:%Y-%m-%d}.",
            )
        return AttributionResult(True, changed=True)

    @transaction.atomic
    def override_attribution(self, company_id, agent_id, performed_by, reason: str) -> AttributionResult:
        """Administrative transfer of attribution that ignores the lock. Always audited."""
        if not reason or not reason.strip():
            return AttributionResult(False, AttributionError("A reason is required to override attribution"))
        company = self._locked_company(company_id)
        if company is None:
            return AttributionResult(False, CompanyNotFoundError("Company not found"))
        agent_id = _pk(agent_id)
        if not self._agent_exists(agent_id):
            return AttributionResult(False, AgentNotFoundError(f"Agent {agent_id} not found"))

        previous = company.referred_by_id
        company.referred_by_id = agent_id
        company.save(update_fields=["referred_by", "updated_at"])
        self.audit.record(
            "Company", company.pk, "ATTRIBUTION_OVERRIDE",
            old_value={"referred_by": previous},
            new_value={"referred_by": agent_id, "reason": reason.strip(), "locked": self.is_locked(company)},
            performed_by=performed_by,
        )
        logger.warning(
            "Company #%s attribution overridden from %s to %s: %s", company.pk, previous, agent_id, reason,
        )
        return AttributionResult(True, changed=previous != agent_id)
