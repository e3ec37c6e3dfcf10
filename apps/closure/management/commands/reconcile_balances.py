"""
Management command to compare ledger head running balances with the
transaction history and optionally repair drift.

Intended to run nightly.

Usage:
    python manage.py reconcile_balances
    python manage.py reconcile_balances --account 1 --fix
"""
from django.core.management.base import BaseCommand, CommandError

from apps.closure.services_balance import reconcile_balances
from apps.finance.models import Account


class Command(BaseCommand):
    help = 'Reconcile ledger head balances against the transaction history'

    def add_arguments(self, parser):
        parser.add_argument(
            '--account',
            type=int,
            help='Account ID to check (default: all)'
        )
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Correct drifted balances'
        )

    def handle(self, *args, **options):
        account = None
        if options['account']:
            try:
                account = Account.objects.get(pk=options['account'])
            except Account.DoesNotExist as exc:
                raise CommandError(f"Account {options['account']} does not exist") from exc

        report = reconcile_balances(account=account, fix=options['fix'])

        self.stdout.write(f"Ledger heads checked: {report.checked}")
        for item in report.discrepancies:
            self.stdout.write(self.style.WARNING(
                f"  {item['ledger_head']} (#{item['ledger_head_id']}): "
                f"running {item['current_balance']}, expected {item['expected_balance']}"
            ))
        if options['fix']:
            self.stdout.write(self.style.SUCCESS(f"Balances corrected: {report.fixed}"))
        elif report.discrepancies:
            self.stdout.write("Run with --fix to correct these balances.")
        else:
            self.stdout.write(self.style.SUCCESS("All balances reconcile."))
