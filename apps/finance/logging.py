"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Centralized logging for ledger operations.
-------------------------------------------------------------------------
"""
import logging

logger = logging.getLogger('ledger')


def _username(user) -> str:
    return getattr(user, 'username', None) or 'system'


class LedgerLogger:
    """Centralized logging for postings, cheques and periods"""

    @staticmethod
    def log_transaction_posted(tx, user=None):
        """Log transaction posting with full context"""
        logger.info(
            f"Transaction posted: {tx.pk} | "
            f"Type: {tx.tx_type} | "
            f"Mode: {tx.cash_type} | "
            f"Amount: {tx.amount} | "
            f"Head: {tx.ledger_head.name} | "
            f"Date: {tx.tx_date} | "
            f"Status: {tx.status} | "
            f"Posted by: {_username(user)}",
            extra={
                'transaction_id': str(tx.pk),
                'account_id': tx.account_id,
                'ledger_head_id': tx.ledger_head_id,
                'amount': str(tx.amount),
                'status': tx.status,
            }
        )

    @staticmethod
    def log_transaction_voided(tx, user=None):
        """Log transaction void"""
        logger.warning(
            f"Transaction voided: {tx.pk} | "
            f"Type: {tx.tx_type} | "
            f"Amount: {tx.amount} | "
            f"Date: {tx.tx_date} | "
            f"Voided by: {_username(user)}",
            extra={
                'transaction_id': str(tx.pk),
                'account_id': tx.account_id,
                'amount': str(tx.amount),
            }
        )

    @staticmethod
    def log_cheque_cleared(cheque, user=None):
        """Log cheque clearing"""
        logger.info(
            f"Cheque cleared: {cheque.cheque_number} | "
            f"Bank: {cheque.bank_name} | "
            f"Amount: {cheque.transaction.amount} | "
            f"Cleared on: {cheque.clearing_date} | "
            f"Cleared by: {_username(user)}",
            extra={
                'cheque_id': cheque.pk,
                'transaction_id': str(cheque.transaction_id),
                'account_id': cheque.account_id,
                'amount': str(cheque.transaction.amount),
            }
        )

    @staticmethod
    def log_cheque_cancelled(cheque, reason, user=None):
        """Log cheque cancellation"""
        logger.warning(
            f"Cheque cancelled: {cheque.cheque_number} | "
            f"Bank: {cheque.bank_name} | "
            f"Reason: {reason or '-'} | "
            f"Cancelled by: {_username(user)}",
            extra={
                'cheque_id': cheque.pk,
                'transaction_id': str(cheque.transaction_id),
                'account_id': cheque.account_id,
                'reason': reason,
            }
        )

    @staticmethod
    def log_period_opened(account, month, year, backdated, user=None):
        """Log period opening"""
        logger.info(
            f"Period opened: {month:02d}/{year} | "
            f"Account: {account.name} | "
            f"Backdated: {'yes' if backdated else 'no'} | "
            f"Opened by: {_username(user)}",
            extra={
                'account_id': account.pk,
                'month': month,
                'year': year,
                'backdated': backdated,
            }
        )

    @staticmethod
    def log_period_closed(account, month, year, user=None):
        """Log period closing"""
        logger.info(
            f"Period closed: {month:02d}/{year} | "
            f"Account: {account.name} | "
            f"Last closed date: {account.last_closed_date} | "
            f"Closed by: {_username(user)}",
            extra={
                'account_id': account.pk,
                'month': month,
                'year': year,
            }
        )
