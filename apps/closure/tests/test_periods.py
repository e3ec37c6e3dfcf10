"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Tests for the period state machine: open, close, reopen,
             backdated opens and the month-end batch close.
-------------------------------------------------------------------------
"""
from datetime import date
from unittest import mock

from django.db import transaction

from apps.closure.models import AccountPeriod, MonthlyLedgerBalance, month_index
from apps.closure.services import PeriodClosureService, validate_period
from apps.core.exceptions import (
    NoLedgerHeadsException, PeriodNotOpenException, PeriodValidationException,
    StorageFailureException, UniqueConstraintViolationException, translate_db_errors,
)
from apps.core.models import AuditAction, AuditLog
from apps.finance.models import Account, LedgerHead
from apps.finance.services_transaction import TransactionService
from apps.finance.tests.base import AS_OF, D, LedgerTestCase


class OpenPeriodTests(LedgerTestCase):
    """Opening periods."""

    def test_open_seeds_a_row_per_head(self):
        period = AccountPeriod.objects.get(account=self.account, is_open=True)
        self.assertEqual((period.month, period.year), (6, 2025))
        self.assertIsNotNone(period.opened_at)

        rows = PeriodClosureService.get_monthly_balances(self.account.pk, 6, 2025)
        self.assertEqual([row.ledger_head for row in rows], [self.zakat, self.building])
        for row in rows:
            self.assertEqual(row.opening_balance, D('0.00'))
            self.assertEqual(row.closing_balance, D('0.00'))
            self.assertEqual(row.period, period)
            self.assertTrue(row.is_open)

        entry = AuditLog.objects.get(action=AuditAction.PERIOD_OPENED, entity_id=str(period.pk))
        self.assertEqual(entry.user, self.user)

    def test_forward_open_closes_previous(self):
        self.post()
        result = PeriodClosureService.open_period(self.account.pk, 7, 2025, as_of=date(2025, 7, 1))

        self.assertFalse(result.backdated)
        self.assertFalse(result.recalculated)
        open_periods = AccountPeriod.objects.filter(account=self.account, is_open=True)
        self.assertEqual(open_periods.count(), 1)
        self.assertEqual(open_periods.get().month, 7)

        june = AccountPeriod.objects.get(account=self.account, month=6, year=2025)
        self.assertFalse(june.is_open)
        self.assertIsNotNone(june.closed_at)

        july = MonthlyLedgerBalance.objects.get(ledger_head=self.zakat, month=7, year=2025)
        self.assertEqual(july.opening_balance, D('1000.00'))

    def test_reopening_the_open_month_is_harmless(self):
        result = PeriodClosureService.open_period(self.account.pk, 6, 2025, as_of=AS_OF)

        self.assertFalse(result.backdated)
        self.assertEqual(AccountPeriod.objects.filter(account=self.account).count(), 1)
        self.assertEqual(MonthlyLedgerBalance.objects.filter(account=self.account).count(), 2)

    def test_invalid_month_and_year(self):
        with self.assertRaises(PeriodValidationException):
            PeriodClosureService.open_period(self.account.pk, 13, 2025)
        with self.assertRaises(PeriodValidationException):
            PeriodClosureService.open_period(self.account.pk, 0, 2025)
        with self.assertRaises(PeriodValidationException) as ctx:
            PeriodClosureService.open_period(self.account.pk, 5, 1999)
        self.assertIn('Invalid year: 1999', ctx.exception.message)

    def test_month_must_be_an_integer(self):
        with self.assertRaises(PeriodValidationException):
            validate_period('3', 2025)

    def test_account_without_heads(self):
        empty = Account.objects.create(name='Dormant Fund')
        with self.assertRaises(NoLedgerHeadsException):
            PeriodClosureService.open_period(empty.pk, 6, 2025, as_of=AS_OF)
        self.assertFalse(AccountPeriod.objects.filter(account=empty).exists())

    def test_seed_uses_running_balance_for_new_heads(self):
        self.post()
        PeriodClosureService.close_period(self.account.pk, 6, 2025)
        PeriodClosureService.open_period(self.account.pk, 7, 2025, as_of=date(2025, 7, 2))

        july = PeriodClosureService.get_monthly_balances(self.account.pk, 7, 2025)
        self.assertEqual(
            {row.ledger_head_id: row.opening_balance for row in july},
            {self.zakat.pk: D('1000.00'), self.building.pk: D('0.00')}
        )


class ClosePeriodTests(LedgerTestCase):
    """Closing periods."""

    def test_close_finalizes_rows(self):
        self.post(amount='1000.00')
        self.post(tx_type='debit', amount='200.00')
        self.post(cash_type='bank', amount='50.00', ledger_head_id=self.building.pk)

        result = PeriodClosureService.close_period(self.account.pk, 6, 2025, user=self.user)

        self.assertTrue(result.closed)
        self.assertEqual(result.last_closed_date, date(2025, 6, 30))
        self.account.refresh_from_db()
        self.assertEqual(self.account.last_closed_date, date(2025, 6, 30))

        zakat = MonthlyLedgerBalance.objects.get(ledger_head=self.zakat, month=6, year=2025)
        self.assertEqual(zakat.opening_balance, D('0.00'))
        self.assertEqual(zakat.receipts, D('1000.00'))
        self.assertEqual(zakat.payments, D('200.00'))
        self.assertEqual(zakat.closing_balance, D('800.00'))
        self.assertEqual(zakat.cash_in_hand, D('800.00'))
        self.assertEqual(zakat.cash_in_bank, D('0.00'))
        self.assertFalse(zakat.is_open)

        building = MonthlyLedgerBalance.objects.get(ledger_head=self.building, month=6, year=2025)
        self.assertEqual(building.closing_balance, D('50.00'))
        self.assertEqual(building.cash_in_bank, D('50.00'))

        self.assertFalse(AccountPeriod.objects.filter(account=self.account, is_open=True).exists())
        self.assertTrue(AuditLog.objects.filter(action=AuditAction.PERIOD_CLOSED).exists())

    def test_close_requires_the_open_period(self):
        with self.assertRaises(PeriodNotOpenException):
            PeriodClosureService.close_period(self.account.pk, 5, 2025)

        PeriodClosureService.close_period(self.account.pk, 6, 2025)
        with self.assertRaises(PeriodNotOpenException):
            PeriodClosureService.close_period(self.account.pk, 6, 2025)

    def test_get_open_period_auto_opens_after_close(self):
        PeriodClosureService.close_period(self.account.pk, 6, 2025)

        period = PeriodClosureService.get_open_period(self.account.pk, as_of=date(2025, 7, 3))

        self.assertEqual((period.month, period.year), (7, 2025))
        self.assertTrue(period.is_open)


class ReopenPeriodTests(LedgerTestCase):
    """Moving last_closed_date backwards."""

    def test_reopen_moves_closing_date_back(self):
        PeriodClosureService.close_period(self.account.pk, 6, 2025)

        account = PeriodClosureService.reopen_period(self.account.pk, '2025-05-31', user=self.user)

        self.assertEqual(account.last_closed_date, date(2025, 5, 31))
        entry = AuditLog.objects.get(action=AuditAction.PERIOD_REOPENED)
        self.assertEqual(entry.details['new_closed_date'], '2025-05-31')

    def test_new_date_must_be_earlier(self):
        PeriodClosureService.close_period(self.account.pk, 6, 2025)
        with self.assertRaises(PeriodValidationException):
            PeriodClosureService.reopen_period(self.account.pk, date(2025, 7, 1))
        with self.assertRaises(PeriodValidationException):
            PeriodClosureService.reopen_period(self.account.pk, date(2025, 6, 30))

    def test_reopen_needs_a_date_and_a_closed_period(self):
        with self.assertRaises(PeriodValidationException):
            PeriodClosureService.reopen_period(self.account.pk, date(2025, 1, 31))
        PeriodClosureService.close_period(self.account.pk, 6, 2025)
        with self.assertRaises(PeriodValidationException):
            PeriodClosureService.reopen_period(self.account.pk, 'yesterday')


class BackdatedOpenTests(LedgerTestCase):
    """
    January is posted and closed, June is opened and posted, then March
    is opened again. March, April and May must be rebuilt from history and
    June must follow from them.
    """

    open_month = None

    def setUp(self):
        super().setUp()
        january = date(2025, 1, 10)
        PeriodClosureService.open_period(self.account.pk, 1, 2025, as_of=january)
        self.post(tx_date='2025-01-15', amount='1000.00')
        self.post(
            tx_date='2025-01-20', amount='500.00', cash_type='bank', ledger_head_id=self.building.pk
        )
        PeriodClosureService.close_period(self.account.pk, 1, 2025)
        PeriodClosureService.open_period(self.account.pk, 6, 2025, as_of=AS_OF)
        self.post(tx_date='2025-06-05', tx_type='debit', amount='200.00')

    def rows(self, head):
        return list(
            MonthlyLedgerBalance.objects.filter(ledger_head=head).order_by('year', 'month')
        )

    def test_forward_open_is_not_backdated(self):
        june = MonthlyLedgerBalance.objects.get(ledger_head=self.zakat, month=6, year=2025)
        self.assertEqual(june.opening_balance, D('1000.00'))
        self.assertFalse(
            MonthlyLedgerBalance.objects.filter(account=self.account, month__in=[2, 3, 4, 5]).exists()
        )

    def test_backdated_open_rebuilds_chain(self):
        result = PeriodClosureService.open_period(self.account.pk, 3, 2025, user=self.user, as_of=AS_OF)

        self.assertTrue(result.backdated)
        self.assertTrue(result.recalculated)
        self.assertEqual(result.failed_heads, [])

        open_period = AccountPeriod.objects.get(account=self.account, is_open=True)
        self.assertEqual((open_period.month, open_period.year), (3, 2025))
        for month in (4, 5, 6):
            self.assertFalse(AccountPeriod.objects.get(account=self.account, month=month, year=2025).is_open)

        zakat = {(row.month, row.year): row for row in self.rows(self.zakat)}
        self.assertEqual(sorted(zakat), [(1, 2025), (3, 2025), (4, 2025), (5, 2025), (6, 2025)])
        self.assertEqual(zakat[(3, 2025)].opening_balance, D('1000.00'))
        self.assertEqual(zakat[(3, 2025)].closing_balance, D('1000.00'))
        self.assertEqual(zakat[(4, 2025)].receipts, D('0.00'))
        self.assertEqual(zakat[(5, 2025)].closing_balance, D('1000.00'))
        self.assertEqual(zakat[(6, 2025)].opening_balance, D('1000.00'))
        self.assertEqual(zakat[(6, 2025)].payments, D('200.00'))
        self.assertEqual(zakat[(6, 2025)].closing_balance, D('800.00'))
        self.assertEqual(zakat[(6, 2025)].cash_in_hand, D('-200.00'))

        building = {(row.month, row.year): row for row in self.rows(self.building)}
        self.assertEqual(building[(6, 2025)].closing_balance, D('500.00'))

        self.zakat.refresh_from_db()
        self.assertEqual(zakat[(6, 2025)].closing_balance, self.zakat.current_balance)

    def test_backdated_open_follows_as_of(self):
        PeriodClosureService.open_period(self.account.pk, 3, 2025, as_of=date(2025, 8, 20))

        months = [row.month for row in self.rows(self.zakat)]
        self.assertEqual(months, [1, 3, 4, 5, 6, 7, 8])
        august = MonthlyLedgerBalance.objects.get(ledger_head=self.zakat, month=8, year=2025)
        self.assertEqual(august.opening_balance, D('800.00'))
        self.assertEqual(august.closing_balance, D('800.00'))


class CorrectionWorkflowTests(LedgerTestCase):
    """
    January is posted and closed, June is opened, then March is opened to
    correct it. Corrections in March must reach June once it is reopened.
    """

    open_month = None

    def setUp(self):
        super().setUp()
        PeriodClosureService.open_period(self.account.pk, 1, 2025, as_of=date(2025, 1, 10))
        self.post(tx_date='2025-01-15', amount='1000.00')
        PeriodClosureService.close_period(self.account.pk, 1, 2025)
        PeriodClosureService.open_period(self.account.pk, 6, 2025, as_of=AS_OF)
        PeriodClosureService.open_period(self.account.pk, 3, 2025, as_of=AS_OF)

    def chain(self, head):
        return {
            row.month: (row.opening_balance, row.closing_balance)
            for row in MonthlyLedgerBalance.objects.filter(ledger_head=head, year=2025, month__gte=3)
        }

    def assertChainHolds(self, head):
        rows = list(MonthlyLedgerBalance.objects.filter(ledger_head=head).order_by('year', 'month'))
        for previous, current in zip(rows, rows[1:]):
            if month_index(current.month, current.year) == month_index(previous.month, previous.year) + 1:
                self.assertEqual(current.opening_balance, previous.closing_balance)

    def return_to_june(self):
        PeriodClosureService.close_period(self.account.pk, 3, 2025)
        PeriodClosureService.open_period(self.account.pk, 6, 2025, as_of=AS_OF)

    def test_correction_reaches_the_present_month(self):
        self.post(tx_date='2025-03-10', amount='100.00')
        self.return_to_june()
        PeriodClosureService.close_period(self.account.pk, 6, 2025)

        self.assertEqual(self.chain(self.zakat), {
            3: (D('1000.00'), D('1100.00')),
            4: (D('1100.00'), D('1100.00')),
            5: (D('1100.00'), D('1100.00')),
            6: (D('1100.00'), D('1100.00')),
        })
        self.assertChainHolds(self.zakat)
        self.zakat.refresh_from_db()
        self.assertEqual(self.zakat.current_balance, D('1100.00'))

    def test_void_in_corrected_month_reaches_the_present_month(self):
        result = self.post(tx_date='2025-03-10', amount='100.00')
        self.assertEqual(self.chain(self.zakat)[6], (D('1100.00'), D('1100.00')))

        TransactionService.void_transaction(result.transaction_id, user=self.user, as_of=AS_OF)

        self.assertEqual(self.chain(self.zakat)[4], (D('1000.00'), D('1000.00')))
        self.assertEqual(self.chain(self.zakat)[6], (D('1000.00'), D('1000.00')))
        self.assertChainHolds(self.zakat)

    def test_other_heads_are_left_alone(self):
        before = {
            row.pk: row.last_updated for row in MonthlyLedgerBalance.objects.filter(ledger_head=self.building)
        }
        self.post(tx_date='2025-03-10', amount='100.00')
        after = {
            row.pk: row.last_updated for row in MonthlyLedgerBalance.objects.filter(ledger_head=self.building)
        }
        self.assertEqual(before, after)

    def test_posting_in_the_latest_month_does_not_recalculate(self):
        self.return_to_june()
        recalculations = AuditLog.objects.filter(action=AuditAction.PERIOD_RECALCULATED).count()

        self.post(tx_date='2025-06-10', amount='50.00')

        self.assertEqual(AuditLog.objects.filter(action=AuditAction.PERIOD_RECALCULATED).count(), recalculations)
        june = MonthlyLedgerBalance.objects.get(ledger_head=self.zakat, month=6, year=2025)
        self.assertEqual(june.receipts, D('0.00'))


class OnePeriodOpenTests(LedgerTestCase):
    """At most one open period per account."""

    def open_months(self):
        return list(
            AccountPeriod.objects.filter(account=self.account, is_open=True).values_list('month', 'year')
        )

    def test_database_rejects_a_second_open_period(self):
        with self.assertRaises(UniqueConstraintViolationException) as ctx:
            with transaction.atomic():
                with translate_db_errors('open_period'):
                    AccountPeriod.objects.create(account=self.account, month=7, year=2025, is_open=True)

        self.assertEqual(ctx.exception.details['context'], 'open_period')
        self.assertEqual(self.open_months(), [(6, 2025)])

    def test_any_sequence_of_opens_leaves_one_open_period(self):
        as_of = date(2025, 8, 20)
        for month in (7, 3, 8, 8, 1, 6):
            PeriodClosureService.open_period(self.account.pk, month, 2025, as_of=as_of)
            self.assertEqual(self.open_months(), [(month, 2025)])

        PeriodClosureService.close_period(self.account.pk, 6, 2025)
        self.assertEqual(self.open_months(), [])
        PeriodClosureService.open_period(self.account.pk, 2, 2025, as_of=as_of)
        self.assertEqual(self.open_months(), [(2, 2025)])


class EnsureOpenPeriodsTests(LedgerTestCase):
    """Scheduled job that opens the current month where needed."""

    def test_summary(self):
        other = Account.objects.create(name='Orphanage Fund')
        LedgerHead.objects.create(account=other, name='Meals')
        Account.objects.create(name='Dormant Fund')
        Account.objects.create(name='Closed Fund', is_active=False)

        summary = PeriodClosureService.ensure_open_periods(as_of=AS_OF)

        self.assertEqual(summary, {'opened': 1, 'already_open': 1, 'skipped': 1})
        self.assertTrue(AccountPeriod.objects.filter(account=other, month=6, year=2025, is_open=True).exists())


class ClosePeriodsTests(LedgerTestCase):
    """Month-end job that closes one month on every active account."""

    def setUp(self):
        super().setUp()
        self.orphanage = Account.objects.create(name='Orphanage Fund')
        LedgerHead.objects.create(account=self.orphanage, name='Meals')
        PeriodClosureService.open_period(self.orphanage.pk, 5, 2025, as_of=AS_OF)
        self.dormant = Account.objects.create(name='Dormant Fund')
        Account.objects.create(name='Closed Fund', is_active=False)

    def test_closes_matching_accounts_and_reports_the_rest(self):
        self.post(amount='250.00')

        result = PeriodClosureService.close_periods(6, 2025, user=self.user)

        self.assertEqual(result.closed, [self.account.pk])
        self.assertEqual(result.skipped, [
            {'account_id': self.orphanage.pk, 'account': 'Orphanage Fund', 'reason': 'open period is 05/2025'},
            {'account_id': self.dormant.pk, 'account': 'Dormant Fund', 'reason': 'no open period'},
        ])
        self.account.refresh_from_db()
        self.assertEqual(self.account.last_closed_date, date(2025, 6, 30))
        june = MonthlyLedgerBalance.objects.get(ledger_head=self.zakat, month=6, year=2025)
        self.assertEqual(june.closing_balance, D('250.00'))
        self.assertEqual(AccountPeriod.objects.get(account=self.orphanage, is_open=True).month, 5)

    def test_defaults_to_the_as_of_month(self):
        result = PeriodClosureService.close_periods(as_of=date(2025, 5, 31))

        self.assertEqual((result.month, result.year), (5, 2025))
        self.assertEqual(result.closed, [self.orphanage.pk])
        self.assertEqual(AccountPeriod.objects.get(account=self.account, is_open=True).month, 6)

    def test_failure_rolls_back_every_account(self):
        PeriodClosureService.open_period(self.orphanage.pk, 6, 2025, as_of=AS_OF)
        real = PeriodClosureService.close_period

        def fail_second(account_id, month, year, user=None):
            if account_id == self.orphanage.pk:
                raise StorageFailureException()
            return real(account_id, month, year, user=user)

        with mock.patch.object(PeriodClosureService, 'close_period', side_effect=fail_second):
            with self.assertRaises(StorageFailureException):
                PeriodClosureService.close_periods(6, 2025)

        self.assertTrue(AccountPeriod.objects.get(account=self.account, month=6, year=2025).is_open)
        self.account.refresh_from_db()
        self.assertIsNone(self.account.last_closed_date)

    def test_invalid_month(self):
        with self.assertRaises(PeriodValidationException):
            PeriodClosureService.close_periods(13, 2025)
