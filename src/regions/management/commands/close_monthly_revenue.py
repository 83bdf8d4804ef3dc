"""Compute regional revenue records for a month."""
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from core.periods import parse_period, previous_month
from regions.ledger import RegionalRevenueLedger


class Command(BaseCommand):
    help = "Close a month of regional revenue (default: the previous month)."

    def add_arguments(self, parser):
        parser.add_argument("--month", help="Month to close, as YYYY-MM.")

    def handle(self, *args, **options):
        if options.get("month"):
            try:
                month = parse_period(options["month"])
            except ValueError as exc:
                raise CommandError(str(exc))
        else:
            month = previous_month(timezone.localdate())

        result = RegionalRevenueLedger().close_all_regions_for_month(month)
        self.stdout.write(
            f"{month:%Y-%m}: {result.processed} region(s) processed, {result.skipped} without revenue."
        )
        for error in result.errors:
            self.stderr.write(error)
        if result.exit_code:
            raise CommandError(f"{len(result.errors)} region(s) failed.", returncode=result.exit_code)
        self.stdout.write(self.style.SUCCESS("Done."))
