"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Custom exceptions for the TrustLedger system. These provide
             specific error codes for posting, period and cheque violations.
-------------------------------------------------------------------------
"""
from contextlib import contextmanager
from typing import Iterator, List, Optional

from django.db import IntegrityError, InterfaceError, OperationalError


class LedgerException(Exception):
    """Base exception for all TrustLedger specific errors."""

    error_code: str = "ERR_LEDGER_GENERIC"
    default_message: str = "An error occurred in the ledger system."

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None) -> None:
        """
        Initialize ledger exception.

        Args:
            message: Custom error message. If None, uses default_message.
            details: Additional context dictionary for debugging.
        """
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


# Validation Exceptions
class TransactionValidationException(LedgerException):
    """Raised when transaction input is malformed or does not balance."""

    error_code = "ERR_VALIDATION"
    default_message = "The transaction failed validation."

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None,
                 errors: Optional[List[str]] = None) -> None:
        self.errors = list(errors or [])
        if message is None and self.errors:
            message = "; ".join(self.errors)
        details = dict(details or {})
        if self.errors:
            details.setdefault("errors", self.errors)
        super().__init__(message, details)


class InsufficientFundsException(TransactionValidationException):
    """Raised when a debit exceeds the available cash or bank balance of a head."""

    default_message = "Insufficient balance in the ledger head for this payment."


class PeriodValidationException(TransactionValidationException):
    """Raised when a month/year pair or closing date is out of range."""

    default_message = "Invalid accounting period."


# Period-related Exceptions
class PeriodClosedException(LedgerException):
    """Raised when posting into a month that is not the account's open period."""

    error_code = "ERR_PERIOD_CLOSED"
    default_message = "The accounting period for this date is closed."


class PeriodNotOpenException(LedgerException):
    """Raised when closing a period that is not currently open."""

    error_code = "ERR_PERIOD_NOT_OPEN"
    default_message = "The requested accounting period is not open."


class NoLedgerHeadsException(LedgerException):
    """Raised when opening a period for an account without ledger heads."""

    error_code = "ERR_NO_LEDGER_HEADS"
    default_message = "No ledger heads found for this account."


# Cheque-related Exceptions
class InvalidChequeStateException(LedgerException):
    """Raised when clearing or cancelling a cheque that is not pending."""

    error_code = "ERR_INVALID_CHEQUE_STATE"
    default_message = "Invalid cheque state transition attempted."


# Storage Exceptions
class UniqueConstraintViolationException(LedgerException):
    """Raised on duplicate receipts, snapshots, cheque numbers or open periods."""

    error_code = "ERR_UNIQUE_VIOLATION"
    default_message = "A record with the same unique key already exists."


class StorageFailureException(LedgerException):
    """Raised when the database connection or transport fails."""

    error_code = "ERR_STORAGE_FAILURE"
    default_message = "The storage layer failed to complete the operation."


@contextmanager
def translate_db_errors(context: str = "") -> Iterator[None]:
    """
    Map database driver errors onto the ledger exception taxonomy.

    IntegrityError becomes UniqueConstraintViolationException; connection
    and transport errors become StorageFailureException. The original
    error is kept as the cause and nothing is retried.

    Args:
        context: Short description of the operation, added to the details.
    """
    try:
        yield
    except IntegrityError as exc:
        raise UniqueConstraintViolationException(
            details={"context": context, "error": str(exc)}
        ) from exc
    except (OperationalError, InterfaceError) as exc:
        raise StorageFailureException(
            details={"context": context, "error": str(exc)}
        ) from exc
