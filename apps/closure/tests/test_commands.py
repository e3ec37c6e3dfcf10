"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Tests for the closure management commands.
-------------------------------------------------------------------------
"""
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError

from apps.closure import services_balance
from apps.closure.models import AccountPeriod, MonthlyLedgerBalance
from apps.core.exceptions import TransactionValidationException
from apps.finance.models import Account, LedgerHead
from apps.finance.tests.base import D, LedgerTestCase


class EnsureOpenPeriodsCommandTests(LedgerTestCase):

    def test_opens_missing_periods(self):
        other = Account.objects.create(name='Orphanage Fund')
        LedgerHead.objects.create(account=other, name='Meals')
        out = StringIO()

        call_command('ensure_open_periods', '--as-of', '2025-06-15', stdout=out)

        self.assertIn('Opened: 1', out.getvalue())
        self.assertIn('Already open: 1', out.getvalue())
        self.assertTrue(AccountPeriod.objects.filter(account=other, is_open=True).exists())

    def test_rejects_bad_date(self):
        with self.assertRaises(CommandError):
            call_command('ensure_open_periods', '--as-of', '15/06/2025', stdout=StringIO())


class ClosePeriodsCommandTests(LedgerTestCase):

    def test_closes_and_lists_skipped_accounts(self):
        Account.objects.create(name='Orphanage Fund')
        out = StringIO()

        call_command('close_periods', '--month', '6', '--year', '2025', stdout=out)

        self.assertIn('Period: 06/2025', out.getvalue())
        self.assertIn('Accounts closed: 1', out.getvalue())
        self.assertIn('Orphanage Fund', out.getvalue())
        self.assertFalse(AccountPeriod.objects.filter(account=self.account, is_open=True).exists())

    def test_invalid_month_fails(self):
        with self.assertRaises(CommandError):
            call_command('close_periods', '--month', '13', '--year', '2025', stdout=StringIO())
        self.assertTrue(AccountPeriod.objects.filter(account=self.account, is_open=True).exists())


class RecalculateSnapshotsCommandTests(LedgerTestCase):

    def test_recalculates_from_month(self):
        self.post(amount='1000.00')
        out = StringIO()

        call_command(
            'recalculate_snapshots', '--account', str(self.account.pk),
            '--from', '2025-04-01', '--as-of', '2025-06-15', stdout=out
        )

        self.assertIn('Recalculation completed.', out.getvalue())
        months = MonthlyLedgerBalance.objects.filter(ledger_head=self.zakat).values_list('month', flat=True)
        self.assertEqual(sorted(months), [4, 5, 6])
        june = MonthlyLedgerBalance.objects.get(ledger_head=self.zakat, month=6)
        self.assertEqual(june.closing_balance, D('1000.00'))

    def test_single_ledger_head(self):
        call_command(
            'recalculate_snapshots', '--account', str(self.account.pk),
            '--ledger-head', str(self.building.pk), '--from', '2025-05-01',
            '--as-of', '2025-06-15', stdout=StringIO()
        )
        self.assertTrue(MonthlyLedgerBalance.objects.filter(ledger_head=self.building, month=5).exists())
        self.assertFalse(MonthlyLedgerBalance.objects.filter(ledger_head=self.zakat, month=5).exists())

    def test_unknown_account(self):
        with self.assertRaises(CommandError):
            call_command('recalculate_snapshots', '--account', '9999', '--from', '2025-04-01', stdout=StringIO())

    def test_failed_heads_fail_the_command(self):
        with mock.patch.object(
            services_balance, 'recalculate_monthly_snapshots',
            side_effect=TransactionValidationException("Corrupt history")
        ):
            with self.assertRaises(CommandError):
                call_command(
                    'recalculate_snapshots', '--account', str(self.account.pk),
                    '--from', '2025-04-01', '--as-of', '2025-06-15', stdout=StringIO()
                )


class ReconcileBalancesCommandTests(LedgerTestCase):

    def test_reports_and_fixes(self):
        self.post(amount='1000.00')
        LedgerHead.objects.filter(pk=self.zakat.pk).update(current_balance=D('10.00'), cash_balance=D('10.00'))

        out = StringIO()
        call_command('reconcile_balances', '--account', str(self.account.pk), stdout=out)
        self.assertIn('Run with --fix', out.getvalue())

        out = StringIO()
        call_command('reconcile_balances', '--fix', stdout=out)
        self.assertIn('Balances corrected: 1', out.getvalue())
        self.assertHeadBalances(self.zakat, '1000.00', '1000.00', '0.00')
