"""Celery tasks for the compliance app."""
import logging

from celery import shared_task

logger = logging.getLogger("hrm8")


@shared_task(name="compliance.tasks.scan_compliance")
def scan_compliance():
    """Compute compliance alerts and notify operators about CRITICAL/HIGH ones."""
    from compliance.services import ComplianceAlertService, Severity
    from core.notifications import Notifier

    service = ComplianceAlertService()
    alerts = service.get_all_alerts()
    summary = service.get_alert_summary(alerts)

    urgent = [a for a in alerts if a.severity in (Severity.CRITICAL, Severity.HIGH)]
    if urgent:
        lines = [f"[{a.severity}] {a.title} - {a.entity_name}: {a.description}" for a in urgent]
        Notifier().notify(
            "compliance_alerts",
            f"{len(urgent)} urgent compliance alert(s)",
            "\n".join(lines),
            payload={"critical": summary["critical"], "high": summary["high"], "total": summary["total"]},
        )

    logger.info("scan_compliance completed: %d alerts (%d urgent).", summary["total"], len(urgent))
    return summary
