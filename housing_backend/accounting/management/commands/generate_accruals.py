# accounting/management/commands/generate_accruals.py

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from accounting.services.accrual_service import (
    coerce_obligation,
    generate_accruals_for_period,
    load_obligations,
)
from accounting.services.exceptions import AccountingServiceError
from accounting.services.periods import period_key


class Command(BaseCommand):
    help = (
        "Recognize rent (and first-period admin fees) for one period using the "
        "obligation source configured in ACCOUNTING_OBLIGATION_SOURCE. Safe to re-run."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--period",
            default=None,
            help="Period key YYYY-MM (defaults to the current month)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List the obligations that would be processed without posting",
        )

    def handle(self, *args, **options):
        period = options["period"] or period_key(timezone.localdate())

        try:
            obligations = load_obligations(period)
        except AccountingServiceError as exc:
            raise CommandError(str(exc)) from exc

        if options["dry_run"]:
            for item in obligations:
                try:
                    o = coerce_obligation(item)
                except ValueError as exc:
                    self.stdout.write(self.style.WARNING(f"invalid obligation: {exc}"))
                    continue
                self.stdout.write(
                    f"{o.subject_id}\t{o.scope_id or '-'}\t{o.rate}\t{o.start_date}\t{o.end_date or '-'}"
                )
            self.stdout.write(f"{len(obligations)} obligations for {period} (dry run)")
            return

        try:
            result = generate_accruals_for_period(period, obligations)
        except AccountingServiceError as exc:
            raise CommandError(str(exc)) from exc

        for item in result.skipped:
            self.stdout.write(self.style.WARNING(f"skipped {item.subject_id or '?'}: {item.reason}"))

        self.stdout.write(
            self.style.SUCCESS(
                f"{period}: {len(result.created)} accruals posted, "
                f"{len(result.skipped)} skipped, total {result.total_recognized}."
            )
        )
