"""
Management command to close an accounting month on every active account.

Intended to run from cron on the last day of each month. Accounts whose
open period is a different month are skipped and listed.

Usage:
    python manage.py close_periods
    python manage.py close_periods --month 6 --year 2025
    python manage.py close_periods --as-of 2025-06-30
"""
from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date

from apps.closure.services import PeriodClosureService
from apps.core.exceptions import LedgerException


class Command(BaseCommand):
    help = 'Close the given (default: current) month for every active account'

    def add_arguments(self, parser):
        parser.add_argument(
            '--month',
            type=int,
            help='Month to close (1-12, default: month of --as-of)'
        )
        parser.add_argument(
            '--year',
            type=int,
            help='Year to close (default: year of --as-of)'
        )
        parser.add_argument(
            '--as-of',
            type=str,
            help='Reference date (YYYY-MM-DD, default: today)'
        )

    def handle(self, *args, **options):
        as_of = None
        if options['as_of']:
            as_of = parse_date(options['as_of'])
            if as_of is None:
                raise CommandError(f"Invalid --as-of date: {options['as_of']}")

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS("Month-end closure"))
        self.stdout.write("=" * 80)

        try:
            result = PeriodClosureService.close_periods(
                month=options['month'], year=options['year'], as_of=as_of
            )
        except LedgerException as exc:
            raise CommandError(f"Month-end closure failed, nothing was closed: {exc.message}") from exc

        self.stdout.write(f"Period: {result.month:02d}/{result.year}")
        self.stdout.write(f"Accounts closed: {len(result.closed)}")
        if result.skipped:
            self.stdout.write(self.style.WARNING(f"Accounts skipped: {len(result.skipped)}"))
            for skipped in result.skipped:
                self.stdout.write(f"  - {skipped['account']} (ID: {skipped['account_id']}): {skipped['reason']}")
        self.stdout.write(self.style.SUCCESS("Done."))
