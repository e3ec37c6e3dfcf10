"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Tests for the transaction engine: validation, item
             balancing, running balances and period enforcement.
-------------------------------------------------------------------------
"""
from datetime import date

from django.test import override_settings

from apps.closure.models import AccountPeriod
from apps.core.exceptions import (
    InsufficientFundsException, PeriodClosedException, TransactionValidationException,
)
from apps.core.models import AuditAction, AuditLog
from apps.finance.models import (
    Account, LedgerHead, Transaction, TransactionItem, TransactionStatus,
)
from apps.finance.services_transaction import (
    TransactionService, parse_amount, resolve_split,
)
from apps.finance.tests.base import AS_OF, D, LedgerTestCase


class PostTransactionTests(LedgerTestCase):
    """Posting cash and bank transactions."""

    def test_cash_credit_updates_running_balances(self):
        result = self.post()

        self.assertEqual(result.status, TransactionStatus.COMPLETED)
        self.assertHeadBalances(self.zakat, '1000.00', '1000.00', '0.00')
        self.account.refresh_from_db()
        self.assertEqual(self.account.closing_balance, D('1000.00'))
        self.assertEqual(self.account.cash_balance, D('1000.00'))

        tx = Transaction.objects.get(pk=result.transaction_id)
        self.assertEqual(tx.created_by, self.user)
        items = list(tx.items.all())
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].ledger_head, self.zakat)
        self.assertEqual(items[0].side, '+')

    def test_posting_is_audited(self):
        result = self.post()
        entry = AuditLog.objects.get(entity_type='Transaction', entity_id=result.transaction_id)
        self.assertEqual(entry.action, AuditAction.TRANSACTION_POSTED)
        self.assertEqual(entry.user, self.user)
        self.assertFalse(entry.details['backdated'])

    def test_cash_debit_after_credit(self):
        self.post()
        self.post(tx_type='debit', amount='400.00', description='Stipend')

        self.assertHeadBalances(self.zakat, '600.00', '600.00', '0.00')

    def test_bank_transfer_moves_bank_balance(self):
        self.post(cash_type='bank')
        self.assertHeadBalances(self.zakat, '1000.00', '0.00', '1000.00')

    def test_multiple_splits_between_cash_and_bank(self):
        self.post(cash_type='multiple', cash_amount='300.00', bank_amount='700.00')
        self.assertHeadBalances(self.zakat, '1000.00', '300.00', '700.00')

    def test_items_spread_across_heads(self):
        self.post(items=[
            {'ledger_head_id': self.zakat.pk, 'amount': '700.00', 'side': '+'},
            {'ledger_head_id': self.building.pk, 'amount': '300.00', 'side': '+'},
        ])

        self.assertHeadBalances(self.zakat, '700.00', '700.00', '0.00')
        self.assertHeadBalances(self.building, '300.00', '300.00', '0.00')
        self.account.refresh_from_db()
        self.assertEqual(self.account.closing_balance, D('1000.00'))

    def test_items_with_opposite_sides_net_to_amount(self):
        self.post(ledger_head_id=self.building.pk, amount='500.00', items=[
            {'ledger_head_id': self.building.pk, 'amount': '500.00', 'side': '+'},
        ])
        self.post(amount='100.00', items=[
            {'ledger_head_id': self.zakat.pk, 'amount': '300.00', 'side': '+'},
            {'ledger_head_id': self.building.pk, 'amount': '200.00', 'side': '-'},
        ])

        self.assertHeadBalances(self.zakat, '300.00', '300.00', '0.00')
        self.assertHeadBalances(self.building, '300.00', '300.00', '0.00')

    def test_unbalanced_items_are_rejected(self):
        with self.assertRaises(TransactionValidationException) as ctx:
            self.post(items=[
                {'ledger_head_id': self.zakat.pk, 'amount': '600.00', 'side': '+'},
                {'ledger_head_id': self.building.pk, 'amount': '300.00', 'side': '+'},
            ])

        self.assertIn('do not balance', ctx.exception.message)
        self.assertFalse(Transaction.objects.exists())
        self.assertHeadBalances(self.zakat, '0.00', '0.00', '0.00')

    def test_debit_items_must_net_negative(self):
        self.post()
        with self.assertRaises(TransactionValidationException):
            self.post(tx_type='debit', amount='100.00', items=[
                {'ledger_head_id': self.zakat.pk, 'amount': '100.00', 'side': '+'},
            ])


class TransactionValidationTests(LedgerTestCase):
    """Input validation collects every problem before touching the database."""

    def test_missing_fields_are_all_reported(self):
        with self.assertRaises(TransactionValidationException) as ctx:
            TransactionService.post_transaction({'tx_type': 'refund'}, as_of=AS_OF)

        errors = ctx.exception.errors
        self.assertIn("Account is required.", errors)
        self.assertIn("Ledger head is required.", errors)
        self.assertIn("Amount is required.", errors)
        self.assertIn("Transaction date is required.", errors)
        self.assertIn("Invalid transaction type: refund.", errors)

    def test_amount_must_be_positive(self):
        with self.assertRaises(TransactionValidationException) as ctx:
            self.post(amount='0')
        self.assertIn("Amount must be greater than zero.", ctx.exception.errors)

    def test_amount_precision(self):
        with self.assertRaises(TransactionValidationException) as ctx:
            self.post(amount='10.005')
        self.assertIn("Amount cannot have more than two decimal places.", ctx.exception.errors)

    def test_invalid_date(self):
        with self.assertRaises(TransactionValidationException):
            self.post(tx_date='2025-02-30')

    def test_invalid_cash_type(self):
        with self.assertRaises(TransactionValidationException) as ctx:
            self.post(cash_type='barter')
        self.assertIn("Invalid payment mode: barter.", ctx.exception.errors)

    def test_multiple_split_must_add_up(self):
        with self.assertRaises(TransactionValidationException):
            self.post(cash_type='multiple', cash_amount='300.00', bank_amount='600.00')

    def test_cash_transaction_cannot_carry_bank_amount(self):
        with self.assertRaises(TransactionValidationException):
            self.post(cash_amount='500.00', bank_amount='500.00')

    def test_ledger_head_of_another_account(self):
        other = Account.objects.create(name='Orphanage Fund')
        foreign_head = LedgerHead.objects.create(account=other, name='Meals')

        with self.assertRaises(TransactionValidationException) as ctx:
            self.post(ledger_head_id=foreign_head.pk)
        self.assertIn('does not belong to account', ctx.exception.message)

    def test_unknown_account(self):
        with self.assertRaises(TransactionValidationException):
            self.post(account_id=99999)

    def test_receipt_requires_booklet(self):
        with self.assertRaises(TransactionValidationException) as ctx:
            self.post(receipt_no=5)
        self.assertIn("A receipt number requires a booklet.", ctx.exception.errors)

    def test_malformed_ids_are_validation_errors(self):
        with self.assertRaises(TransactionValidationException) as ctx:
            self.post(account_id='abc', ledger_head_id='abc', donor_id='x1')

        errors = ctx.exception.errors
        self.assertIn("Account must be a valid id, got 'abc'.", errors)
        self.assertIn("Ledger head must be a valid id, got 'abc'.", errors)
        self.assertIn("Donor must be a valid id, got 'x1'.", errors)
        self.assertFalse(Transaction.objects.exists())

    def test_numeric_string_ids_are_accepted(self):
        self.post(account_id=str(self.account.pk), ledger_head_id=str(self.zakat.pk))
        self.assertHeadBalances(self.zakat, '1000.00', '1000.00', '0.00')

    def test_malformed_items(self):
        with self.assertRaises(TransactionValidationException) as ctx:
            self.post(items=['zakat', {'ledger_head_id': 'abc', 'amount': '1000.00', 'side': '+'}])

        errors = ctx.exception.errors
        self.assertIn("Item 1 must be an object with ledger_head_id, amount and side.", errors)
        self.assertIn("Item 2 ledger head must be a valid id, got 'abc'.", errors)

        with self.assertRaises(TransactionValidationException) as ctx:
            self.post(items='zakat')
        self.assertIn("Items must be a list.", ctx.exception.errors)


class SufficientFundsTests(LedgerTestCase):
    """Debits may not overdraw the cash or bank balance they draw on."""

    def test_cash_debit_beyond_cash_balance(self):
        self.post(amount='300.00')

        with self.assertRaises(InsufficientFundsException) as ctx:
            self.post(tx_type='debit', amount='500.00')

        self.assertIn('Insufficient cash balance in Zakat', ctx.exception.message)
        self.assertEqual(Transaction.objects.count(), 1)
        self.assertHeadBalances(self.zakat, '300.00', '300.00', '0.00')

    def test_bank_debit_cannot_use_cash(self):
        self.post(amount='1000.00')

        with self.assertRaises(InsufficientFundsException):
            self.post(tx_type='debit', amount='100.00', cash_type='bank')

    @override_settings(LEDGER_ENFORCE_SUFFICIENT_FUNDS=False)
    def test_enforcement_can_be_disabled(self):
        self.post(tx_type='debit', amount='250.00')
        self.assertHeadBalances(self.zakat, '-250.00', '-250.00', '0.00')

    def test_credits_are_never_checked(self):
        self.post(amount='50.00', items=[
            {'ledger_head_id': self.zakat.pk, 'amount': '150.00', 'side': '+'},
            {'ledger_head_id': self.building.pk, 'amount': '100.00', 'side': '-'},
        ])
        self.assertHeadBalances(self.building, '-100.00', '-100.00', '0.00')


class PeriodEnforcementTests(LedgerTestCase):
    """Postings must fall into the account's open period."""

    def test_posting_outside_open_period(self):
        with self.assertRaises(PeriodClosedException) as ctx:
            self.post(tx_date='2025-05-31')

        self.assertEqual(ctx.exception.details['open_month'], 6)
        self.assertEqual(ctx.exception.details['open_year'], 2025)
        self.assertFalse(Transaction.objects.exists())

    def test_future_month_is_rejected_even_with_override(self):
        with self.assertRaises(PeriodClosedException):
            self.post(tx_date='2025-07-01', allow_backdated=True)

    def test_backdated_override(self):
        result = self.post(tx_date='2025-05-20', allow_backdated=True)

        tx = Transaction.objects.get(pk=result.transaction_id)
        self.assertEqual(tx.tx_date, date(2025, 5, 20))
        self.assertHeadBalances(self.zakat, '1000.00', '1000.00', '0.00')
        entry = AuditLog.objects.get(entity_type='Transaction', entity_id=result.transaction_id)
        self.assertTrue(entry.details['backdated'])

    def test_account_without_open_period_auto_opens(self):
        other = Account.objects.create(name='Orphanage Fund')
        meals = LedgerHead.objects.create(account=other, name='Meals')

        TransactionService.post_transaction({
            'account_id': other.pk,
            'ledger_head_id': meals.pk,
            'amount': '75.00',
            'tx_type': 'credit',
            'tx_date': '2025-06-02',
        }, as_of=AS_OF)

        period = AccountPeriod.objects.get(account=other, is_open=True)
        self.assertEqual((period.month, period.year), (6, 2025))


class SplitHelperTests(LedgerTestCase):
    """Helpers used by the engine."""

    def test_parse_amount(self):
        errors = []
        self.assertEqual(parse_amount('12.5', 'Amount', errors), D('12.50'))
        self.assertIsNone(parse_amount('abc', 'Amount', errors))
        self.assertIsNone(parse_amount('', 'Amount', errors, required=False))
        self.assertEqual(errors, ["Amount must be a number."])

    def test_resolve_split_derives_single_mode(self):
        errors = []
        self.assertEqual(resolve_split('cash', D('10.00'), None, None, errors), (D('10.00'), D('0.00')))
        self.assertEqual(resolve_split('upi', D('10.00'), None, None, errors), (D('0.00'), D('10.00')))
        self.assertEqual(resolve_split('cheque', D('10.00'), D('10.00'), None, errors), (D('0.00'), D('10.00')))
        self.assertEqual(errors, [])

    def test_prorated_item_split(self):
        self.post(
            cash_type='multiple', amount='100.00', cash_amount='30.00', bank_amount='70.00',
            items=[
                {'ledger_head_id': self.zakat.pk, 'amount': '33.33', 'side': '+'},
                {'ledger_head_id': self.building.pk, 'amount': '66.67', 'side': '+'},
            ]
        )

        self.assertHeadBalances(self.zakat, '33.33', '10.00', '23.33')
        self.assertHeadBalances(self.building, '66.67', '20.00', '46.67')
        self.assertEqual(TransactionItem.objects.count(), 2)
