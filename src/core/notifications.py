"""Notification collaborator.

The engine informs operators and consultants about commission events,
attribution locks and compliance alerts.  Delivery is best effort: a
failing mail backend is logged and never propagates into the operation
that triggered the notification.
"""
from __future__ import annotations

import logging
from typing import Any, Sequence

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger("hrm8")


class Notifier:
    """Send plain-text notifications through Django's mail framework."""

    def notify(
        self,
        event: str,
        subject: str,
        message: str,
        recipients: Sequence[str] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> int:
        """Deliver *message*; return the number of messages sent (0 on failure)."""
        to = [r for r in (recipients or getattr(settings, "HRM8_NOTIFICATION_RECIPIENTS", [])) if r]
        if not to:
            logger.debug("Notification %s skipped: no recipients.", event)
            return 0
        body = message
        if payload:
            details = "\n".join(f"{key}: {value}" for key, value in payload.items())
            body = f"{message}\n\n{details}"
        try:
            sent = send_mail(
                subject=f"[HRM8] {subject}",
                message=body,
                from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
                recipient_list=to,
                fail_silently=False,
            )
        except Exception:
            logger.exception("Notification %s could not be delivered to %s", event, to)
            return 0
        logger.info("Notification %s sent to %d recipient(s).", event, len(to))
        return sent
