"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Unit tests for the core module - audit trail and the
             ledger exception taxonomy.
-------------------------------------------------------------------------
"""
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.db import DatabaseError, IntegrityError, OperationalError
from django.test import TestCase

from apps.core.exceptions import (
    InsufficientFundsException, LedgerException, PeriodClosedException,
    StorageFailureException, TransactionValidationException,
    UniqueConstraintViolationException, translate_db_errors,
)
from apps.core.models import AuditAction, AuditLog
from apps.core.services import AuditService


User = get_user_model()


class AuditServiceTests(TestCase):
    """Tests for AuditService class."""

    def setUp(self):
        self.user = User.objects.create_user(username='accountant', password='password')

    def test_log_action_creates_entry(self):
        entry = AuditService.log_action(
            'AccountPeriod', 7, AuditAction.PERIOD_OPENED,
            details={'month': 3, 'year': 2025, 'amount': Decimal('10.50')},
            user=self.user
        )

        self.assertIsNotNone(entry)
        entry.refresh_from_db()
        self.assertEqual(entry.entity_type, 'AccountPeriod')
        self.assertEqual(entry.entity_id, '7')
        self.assertEqual(entry.action, AuditAction.PERIOD_OPENED)
        self.assertEqual(entry.user, self.user)
        self.assertEqual(entry.details['month'], 3)
        # Decimals are stored through DjangoJSONEncoder as strings
        self.assertEqual(entry.details['amount'], '10.50')

    def test_anonymous_user_is_not_recorded(self):
        entry = AuditService.log_action(
            'Cheque', 1, AuditAction.CHEQUE_CLEARED, user=AnonymousUser()
        )
        self.assertIsNone(entry.user)

    def test_system_action_without_user(self):
        entry = AuditService.log_action('Account', 1, AuditAction.BALANCE_RECONCILED)
        self.assertIsNone(entry.user)
        self.assertEqual(entry.details, {})

    def test_write_failure_is_logged_not_raised(self):
        with mock.patch.object(AuditLog.objects, 'create', side_effect=DatabaseError('disk full')):
            with self.assertLogs('apps.core.services', level='ERROR'):
                entry = AuditService.log_action('Cheque', 1, AuditAction.CHEQUE_CANCELLED)
        self.assertIsNone(entry)

    def test_history_for_filters_by_entity(self):
        AuditService.log_action('Cheque', 1, AuditAction.CHEQUE_CLEARED)
        AuditService.log_action('Cheque', 2, AuditAction.CHEQUE_CANCELLED)
        AuditService.log_action('Transaction', 1, AuditAction.TRANSACTION_POSTED)

        history = list(AuditService.history_for('Cheque', 1))
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].action, AuditAction.CHEQUE_CLEARED)


class LedgerExceptionTests(TestCase):
    """Tests for the exception taxonomy."""

    def test_default_message_and_code(self):
        exc = PeriodClosedException()
        self.assertEqual(exc.message, PeriodClosedException.default_message)
        self.assertEqual(exc.to_dict()['error_code'], 'ERR_PERIOD_CLOSED')
        self.assertEqual(exc.to_dict()['details'], {})

    def test_validation_errors_are_joined(self):
        exc = TransactionValidationException(errors=['Amount is required.', 'Account is required.'])
        self.assertEqual(exc.message, 'Amount is required.; Account is required.')
        self.assertEqual(exc.details['errors'], ['Amount is required.', 'Account is required.'])
        self.assertEqual(exc.error_code, 'ERR_VALIDATION')

    def test_insufficient_funds_is_a_validation_error(self):
        exc = InsufficientFundsException(errors=['Insufficient cash balance'])
        self.assertIsInstance(exc, TransactionValidationException)
        self.assertIsInstance(exc, LedgerException)

    def test_integrity_error_becomes_unique_violation(self):
        with self.assertRaises(UniqueConstraintViolationException) as ctx:
            with translate_db_errors('open_period'):
                raise IntegrityError('duplicate key')
        self.assertEqual(ctx.exception.details['context'], 'open_period')
        self.assertIsInstance(ctx.exception.__cause__, IntegrityError)

    def test_operational_error_becomes_storage_failure(self):
        with self.assertRaises(StorageFailureException):
            with translate_db_errors('close_period'):
                raise OperationalError('connection lost')

    def test_other_errors_pass_through(self):
        with self.assertRaises(ValueError):
            with translate_db_errors():
                raise ValueError('not a database error')
