"""
Management command to make sure every active account has an open period.

Run on deployment or from cron at the start of each month.

Usage:
    python manage.py ensure_open_periods
    python manage.py ensure_open_periods --as-of 2025-07-01
"""
from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date

from apps.closure.services import PeriodClosureService


class Command(BaseCommand):
    help = 'Open the current month for every active account without an open period'

    def add_arguments(self, parser):
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
        self.stdout.write(self.style.SUCCESS("Ensuring open accounting periods"))
        self.stdout.write("=" * 80)

        summary = PeriodClosureService.ensure_open_periods(as_of=as_of)

        self.stdout.write(f"Opened: {summary['opened']}")
        self.stdout.write(f"Already open: {summary['already_open']}")
        if summary['skipped']:
            self.stdout.write(self.style.WARNING(f"Skipped (no ledger heads): {summary['skipped']}"))
        self.stdout.write(self.style.SUCCESS("Done."))
