"""Licensee lifecycle operations for the regions app.

Suspension and termination are recorded here; blocking payouts and new
attributions for non-active licensees is enforced by the callers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal

from django.db import transaction

from core.audit import AuditTrail
from core.exceptions import InvalidTransitionError

from .models import RegionalLicensee

logger = logging.getLogger("hrm8")


@dataclass(frozen=True)
class LicenseePatch:
    """Typed partial update of a licensee. ``None`` leaves a field unchanged."""

    name: str | None = None
    legal_entity_name: str | None = None
    email: str | None = None
    revenue_share_percent: Decimal | None = None
    agreement_start_date: date | None = None
    agreement_end_date: date | None = None


def _licensee_snapshot(licensee: RegionalLicensee) -> dict:
    return {
        "name": licensee.name,
        "status": licensee.status,
        "revenue_share_percent": str(licensee.revenue_share_percent),
        "agreement_start_date": licensee.agreement_start_date.isoformat() if licensee.agreement_start_date else None,
        "agreement_end_date": licensee.agreement_end_date.isoformat() if licensee.agreement_end_date else None,
    }


def _validate_percent(percent):
    if percent is not None and not (Decimal("0") <= Decimal(percent) <= Decimal("100")):
        raise ValueError(f"revenue_share_percent must be within [0, 100], got {percent}.")


class LicenseeService:

    def __init__(self, audit=None):
        self.audit = audit or AuditTrail()

    @transaction.atomic
    def create_licensee(
        self,
        name: str,
        revenue_share_percent,
        agreement_start_date: date,
        agreement_end_date: date | None = None,
        email: str = "",
        legal_entity_name: str = "",
        performed_by=None,
    ) -> RegionalLicensee:
        _validate_percent(revenue_share_percent)
        licensee = RegionalLicensee.objects.create(
            name=name,
            legal_entity_name=legal_entity_name,
            email=email,
            revenue_share_percent=revenue_share_percent,
            agreement_start_date=agreement_start_date,
            agreement_end_date=agreement_end_date,
        )
        self.audit.record(
            "RegionalLicensee", licensee.pk, "CREATE",
            new_value=_licensee_snapshot(licensee), performed_by=performed_by,
        )
        logger.info("Licensee #%s (%s) created.", licensee.pk, licensee.name)
        return licensee

    @transaction.atomic
    def update_licensee(self, licensee: RegionalLicensee, patch: LicenseePatch, performed_by=None) -> RegionalLicensee:
        licensee = RegionalLicensee.objects.select_for_update().get(pk=licensee.pk)
        _validate_percent(patch.revenue_share_percent)
        before = _licensee_snapshot(licensee)
        changed = []
        for f in fields(patch):
            value = getattr(patch, f.name)
            if value is not None and getattr(licensee, f.name) != value:
                setattr(licensee, f.name, value)
                changed.append(f.name)
        if not changed:
            return licensee
        licensee.save(update_fields=changed + ["updated_at"])
        self.audit.record(
            "RegionalLicensee", licensee.pk, "UPDATE",
            old_value=before, new_value=_licensee_snapshot(licensee), performed_by=performed_by,
        )
        return licensee

    def _transition(self, licensee, allowed_from, target, action, performed_by, reason=""):
        with transaction.atomic():
            licensee = RegionalLicensee.objects.select_for_update().get(pk=licensee.pk)
            if licensee.status not in allowed_from:
                raise InvalidTransitionError(f"Licensee #{licensee.pk}", licensee.status, target)
            previous = licensee.status
            licensee.status = target
            licensee.save(update_fields=["status", "updated_at"])
            new_value = {"status": target}
            if reason:
                new_value["reason"] = reason
            self.audit.record(
                "RegionalLicensee", licensee.pk, action,
                old_value={"status": previous}, new_value=new_value, performed_by=performed_by,
            )
        logger.info("Licensee #%s %s -> %s.", licensee.pk, previous, target)
        return licensee

    def suspend_licensee(self, licensee, reason="", performed_by=None):
        return self._transition(
            licensee, {RegionalLicensee.Status.ACTIVE}, RegionalLicensee.Status.SUSPENDED,
            "SUSPEND", performed_by, reason,
        )

    def terminate_licensee(self, licensee, reason="", performed_by=None):
        return self._transition(
            licensee,
            {RegionalLicensee.Status.ACTIVE, RegionalLicensee.Status.SUSPENDED},
            RegionalLicensee.Status.TERMINATED,
            "TERMINATE", performed_by, reason,
        )

    @transaction.atomic
    def delete_licensee(self, licensee, performed_by=None):
        """Delete a licensee that never accrued revenue or settlements.

        Raises ``ProtectedError`` otherwise; terminate such licensees instead.
        """
        snapshot = _licensee_snapshot(licensee)
        pk = licensee.pk
        licensee.delete()
        self.audit.record("RegionalLicensee", pk, "DELETE", old_value=snapshot, performed_by=performed_by)
        logger.info("Licensee #%s deleted.", pk)

    def reactivate_licensee(self, licensee, performed_by=None):
        return self._transition(
            licensee, {RegionalLicensee.Status.SUSPENDED}, RegionalLicensee.Status.ACTIVE,
            "REACTIVATE", performed_by,
        )
