"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Cheque settlement service. Clears or cancels pending
             cheques and applies their deferred balance effect.
-------------------------------------------------------------------------
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.utils.dateparse import parse_date

from apps.core.exceptions import (
    InsufficientFundsException, InvalidChequeStateException,
    TransactionValidationException, translate_db_errors,
)
from apps.core.models import AuditAction
from apps.core.services import AuditService
from apps.finance.logging import LedgerLogger
from apps.finance.models import (
    Account, Cheque, ChequeStatus, ItemSide, LedgerHead, TransactionStatus, TransactionType,
)
from apps.finance.services_transaction import (
    apply_transaction_effects, available_bank_balance, cascade_if_history_changed,
)

logger = logging.getLogger(__name__)


@dataclass
class ChequeResult:
    """Outcome of a cheque state transition."""

    cheque_id: int
    status: str

    def to_dict(self) -> dict:
        return {'cheque_id': self.cheque_id, 'status': self.status}


class ChequeService:
    """
    Service class for the cheque deferred-settlement state machine.

    pending -> cleared: the transaction completes and its effect is
    applied to the ledger heads, once.
    pending -> cancelled: the transaction is cancelled and never affects
    any balance.
    Any transition out of a terminal state fails with
    InvalidChequeStateException.
    """

    @staticmethod
    def _lock_pending(cheque_id, verb: str) -> Tuple[Account, Cheque]:
        # Account row first, same order as posting and period changes
        account_id = Cheque.objects.values_list('account_id', flat=True).get(pk=cheque_id)
        account = Account.objects.select_for_update().get(pk=account_id)
        cheque = Cheque.objects.select_for_update().select_related('transaction').get(pk=cheque_id)
        if cheque.status != ChequeStatus.PENDING:
            raise InvalidChequeStateException(
                f"Cannot {verb} cheque that is already {cheque.status}",
                details={'cheque_id': cheque.pk, 'status': cheque.status}
            )
        return account, cheque

    @staticmethod
    @transaction.atomic
    def clear_cheque(cheque_id, clearing_date, user=None, as_of: Optional[date] = None) -> ChequeResult:
        """
        Clear a pending cheque.

        Args:
            cheque_id: Cheque to clear.
            clearing_date: Date the bank honoured the cheque (date or ISO string).
            user: Acting user for the audit entry.
            as_of: Reference "today" for snapshot recalculation.

        Returns:
            ChequeResult with status 'cleared'.

        Raises:
            TransactionValidationException: If the clearing date is missing,
                invalid or before the issue date.
            InvalidChequeStateException: If the cheque is not pending.
            InsufficientFundsException: If a debit cheque's source heads
                cannot cover it.
        """
        if isinstance(clearing_date, str):
            clearing_date = parse_date(clearing_date)
        if clearing_date is None:
            raise TransactionValidationException(errors=["A valid clearing date is required."])

        with translate_db_errors('clear_cheque'):
            account, cheque = ChequeService._lock_pending(cheque_id, 'clear')
            tx = cheque.transaction
            if clearing_date < cheque.issue_date:
                raise TransactionValidationException(
                    errors=[f"Clearing date {clearing_date} is before the issue date {cheque.issue_date}."]
                )

            if tx.tx_type == TransactionType.DEBIT and settings.LEDGER_ENFORCE_SUFFICIENT_FUNDS:
                required = {}
                for item in tx.items.all():
                    if item.side == ItemSide.MINUS:
                        required[item.ledger_head_id] = required.get(item.ledger_head_id, Decimal('0.00')) + item.amount
                shortfalls = []
                for head in LedgerHead.objects.select_for_update().filter(pk__in=required):
                    if head.bank_balance < required[head.pk]:
                        shortfalls.append(
                            f"Insufficient bank balance in {head.name} to clear cheque "
                            f"{cheque.cheque_number}. Available: {head.bank_balance}, "
                            f"Required: {required[head.pk]}"
                        )
                if shortfalls:
                    raise InsufficientFundsException(errors=shortfalls)

            cheque.mark_cleared(clearing_date)
            tx.status = TransactionStatus.COMPLETED
            tx.save(update_fields=['status', 'updated_at'])

            apply_transaction_effects(tx)
            account.refresh_totals()

            AuditService.log_action(
                'Cheque',
                cheque.pk,
                AuditAction.CHEQUE_CLEARED,
                details={
                    'transaction_id': str(tx.pk),
                    'cheque_number': cheque.cheque_number,
                    'amount': tx.amount,
                    'clearing_date': clearing_date,
                },
                user=user
            )

            cascade_if_history_changed(
                account, tx.tx_date, tx.items.values_list('ledger_head_id', flat=True),
                user=user, as_of=as_of
            )

        LedgerLogger.log_cheque_cleared(cheque, user)
        return ChequeResult(cheque_id=cheque.pk, status=cheque.status)

    @staticmethod
    @transaction.atomic
    def cancel_cheque(cheque_id, reason: Optional[str] = None, user=None) -> ChequeResult:
        """
        Cancel a pending cheque. No balance is ever touched.

        Raises:
            InvalidChequeStateException: If the cheque is not pending.
        """
        with translate_db_errors('cancel_cheque'):
            _, cheque = ChequeService._lock_pending(cheque_id, 'cancel')
            tx = cheque.transaction

            cheque.mark_cancelled(reason or '')
            tx.status = TransactionStatus.CANCELLED
            if reason:
                tx.description = f"{tx.description} | Cancelled: {reason}" if tx.description \
                    else f"Cancelled: {reason}"
            tx.save(update_fields=['status', 'description', 'updated_at'])

            AuditService.log_action(
                'Cheque',
                cheque.pk,
                AuditAction.CHEQUE_CANCELLED,
                details={
                    'transaction_id': str(tx.pk),
                    'cheque_number': cheque.cheque_number,
                    'amount': tx.amount,
                    'reason': reason or '',
                },
                user=user
            )

        LedgerLogger.log_cheque_cancelled(cheque, reason, user)
        return ChequeResult(cheque_id=cheque.pk, status=cheque.status)

    @staticmethod
    def available_bank_balance(ledger_head_id) -> Decimal:
        """Bank balance of a ledger head net of pending debit cheques."""
        return available_bank_balance(LedgerHead.objects.get(pk=ledger_head_id))
