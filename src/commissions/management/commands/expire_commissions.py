"""Run the commission expiry sweep once."""
from django.core.management.base import BaseCommand, CommandError

from commissions.engine import CommissionEngine


class Command(BaseCommand):
    help = "Cancel PENDING commissions that are past their expiry window."

    def handle(self, *args, **options):
        result = CommissionEngine().expire_stale_commissions()
        self.stdout.write(
            f"Expired {result.total_expired} commission(s): "
            f"{result.aged_expired} by age, {result.explicit_expired} by expiry date."
        )
        for error in result.errors:
            self.stderr.write(error)
        if result.exit_code:
            raise CommandError(f"{len(result.errors)} commission(s) could not be expired.", returncode=result.exit_code)
        self.stdout.write(self.style.SUCCESS("Commission expiry check complete."))
