"""Audit collaborator.

Every lock, transfer, suspension and status transition in the engine goes
through :class:`AuditTrail`, which appends one :class:`~core.models.AuditLog`
row per call.  Services receive an ``AuditTrail`` at construction so tests
can swap in a recording double.
"""
from __future__ import annotations

import logging
from typing import Any

from core.middleware import get_current_user
from core.models import AuditLog

logger = logging.getLogger("hrm8")

SYSTEM_ACTOR = "system"


def resolve_actor(performed_by: Any = None) -> str:
    """Return a printable actor id: explicit value, request user, or ``system``."""
    if performed_by is None:
        performed_by = get_current_user()
    if performed_by is None:
        return SYSTEM_ACTOR
    if isinstance(performed_by, str):
        return performed_by
    pk = getattr(performed_by, "pk", None)
    if pk is not None:
        return f"{performed_by.__class__.__name__.lower()}:{pk}"
    return str(performed_by)


class AuditTrail:
    """Append-only writer for :class:`~core.models.AuditLog`."""

    def record(
        self,
        entity_type: str,
        entity_id: Any,
        action: str,
        old_value: dict[str, Any] | None = None,
        new_value: dict[str, Any] | None = None,
        performed_by: Any = None,
    ) -> AuditLog:
        entry = AuditLog.objects.create(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            old_value=old_value,
            new_value=new_value,
            performed_by=resolve_actor(performed_by),
        )
        logger.debug("Audit: %s %s #%s by %s", action, entity_type, entity_id, entry.performed_by)
        return entry
