"""
Management command to rebuild monthly ledger snapshots from the
transaction history.

Recomputes every month from --from onwards (through the later of the last
stored snapshot and --as-of) for one ledger head or all heads of an account.

Usage:
    python manage.py recalculate_snapshots --account 1 --from 2025-01-01
    python manage.py recalculate_snapshots --account 1 --ledger-head 4 --from 2025-03-01
"""
from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date

from apps.closure.services_balance import recalculate_account_snapshots
from apps.finance.models import Account


class Command(BaseCommand):
    help = 'Recalculate monthly ledger snapshots forward from a month'

    def add_arguments(self, parser):
        parser.add_argument(
            '--account',
            type=int,
            required=True,
            help='Account ID to recalculate'
        )
        parser.add_argument(
            '--ledger-head',
            type=int,
            help='Ledger head ID (default: all heads of the account)'
        )
        parser.add_argument(
            '--from',
            dest='from_date',
            type=str,
            required=True,
            help='First month to rebuild (YYYY-MM-DD, any day in the month)'
        )
        parser.add_argument(
            '--as-of',
            type=str,
            help='Reference date (YYYY-MM-DD, default: today)'
        )

    def handle(self, *args, **options):
        from_date = parse_date(options['from_date'])
        if from_date is None:
            raise CommandError(f"Invalid --from date: {options['from_date']}")
        as_of = None
        if options['as_of']:
            as_of = parse_date(options['as_of'])
            if as_of is None:
                raise CommandError(f"Invalid --as-of date: {options['as_of']}")

        try:
            account = Account.objects.get(pk=options['account'])
        except Account.DoesNotExist as exc:
            raise CommandError(f"Account {options['account']} does not exist") from exc

        heads = account.ledger_heads.order_by('id')
        if options['ledger_head']:
            heads = heads.filter(pk=options['ledger_head'])
            if not heads.exists():
                raise CommandError(
                    f"Ledger head {options['ledger_head']} does not belong to account {account.name}"
                )

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS(
            f"Recalculating snapshots for {account.name} from {from_date:%m/%Y}"
        ))
        self.stdout.write("=" * 80)

        result = recalculate_account_snapshots(account, from_date, as_of=as_of, ledger_heads=heads)

        for snapshot in result.snapshots:
            changed = sum(1 for month in snapshot.months if month.changed)
            self.stdout.write(
                f"  Ledger head {snapshot.ledger_head_id}: "
                f"{snapshot.recalculated_months} months, {changed} changed"
            )
        for failure in result.failed_heads:
            self.stdout.write(self.style.ERROR(
                f"  Ledger head {failure['ledger_head_id']} ({failure['ledger_head']}) failed: {failure['error']}"
            ))

        if result.failed_heads:
            raise CommandError(f"{len(result.failed_heads)} ledger heads failed to recalculate")
        self.stdout.write(self.style.SUCCESS("Recalculation completed."))
