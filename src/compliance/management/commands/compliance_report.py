"""Print the current compliance alerts."""
from django.core.management.base import BaseCommand, CommandError

from compliance.services import ComplianceAlertService


class Command(BaseCommand):
    help = "List compliance alerts for licensees and regions."

    def add_arguments(self, parser):
        parser.add_argument(
            "--fail-on-critical",
            action="store_true",
            help="Exit with a non-zero status when CRITICAL alerts exist.",
        )

    def handle(self, *args, **options):
        service = ComplianceAlertService()
        alerts = service.get_all_alerts()
        summary = service.get_alert_summary(alerts)

        for alert in alerts:
            self.stdout.write(f"{alert.severity:<8} {alert.id:<20} {alert.entity_name}: {alert.description}")
        self.stdout.write(
            f"Total: {summary['total']} (critical {summary['critical']}, "
            f"high {summary['high']}, medium {summary['medium']}, low {summary['low']})"
        )
        if options["fail_on_critical"] and summary["critical"]:
            raise CommandError(f"{summary['critical']} critical compliance alert(s).")
