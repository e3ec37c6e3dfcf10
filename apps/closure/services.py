"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Period closure service. Opens and closes accounting months
             per account and triggers snapshot recalculation for
             backdated opens.
-------------------------------------------------------------------------
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from apps.core.exceptions import (
    NoLedgerHeadsException, PeriodNotOpenException, PeriodValidationException,
    translate_db_errors,
)
from apps.core.models import AuditAction
from apps.core.services import AuditService
from apps.closure.models import (
    AccountPeriod, MonthlyLedgerBalance, last_day_of_month, month_index,
)
from apps.closure.services_balance import (
    calculate_activity, recalculate_account_snapshots,
)
from apps.finance.logging import LedgerLogger
from apps.finance.models import Account, ZERO

logger = logging.getLogger(__name__)


@dataclass
class OpenPeriodResult:
    """Outcome of opening an accounting period."""

    account_id: int
    month: int
    year: int
    opened: bool = True
    recalculated: bool = False
    backdated: bool = False
    failed_heads: List[Dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'account_id': self.account_id,
            'month': self.month,
            'year': self.year,
            'opened': self.opened,
            'recalculated': self.recalculated,
            'backdated': self.backdated,
            'failed_heads': self.failed_heads,
        }


@dataclass
class ClosePeriodResult:
    """Outcome of closing an accounting period."""

    account_id: int
    month: int
    year: int
    closed: bool
    last_closed_date: date

    def to_dict(self) -> dict:
        return {
            'account_id': self.account_id,
            'month': self.month,
            'year': self.year,
            'closed': self.closed,
            'last_closed_date': self.last_closed_date.isoformat(),
        }


@dataclass
class BatchCloseResult:
    """Outcome of closing one month across every active account."""

    month: int
    year: int
    closed: List[int] = field(default_factory=list)
    skipped: List[Dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'month': self.month,
            'year': self.year,
            'closed': self.closed,
            'skipped': self.skipped,
        }


def validate_period(month, year) -> None:
    """
    Validate a month/year pair.

    Raises:
        PeriodValidationException: If month is outside 1-12 or year is
            outside the configured range.
    """
    errors = []
    if not isinstance(month, int) or not 1 <= month <= 12:
        errors.append(f"Invalid month: {month}. Month must be between 1 and 12.")
    if not isinstance(year, int) or not settings.LEDGER_MIN_YEAR <= year <= settings.LEDGER_MAX_YEAR:
        errors.append(
            f"Invalid year: {year}. Year must be between "
            f"{settings.LEDGER_MIN_YEAR} and {settings.LEDGER_MAX_YEAR}."
        )
    if errors:
        raise PeriodValidationException(errors=errors, details={'month': month, 'year': year})


class PeriodClosureService:
    """
    Service class for the accounting period state machine.

    Exactly one month per account is open for posting; every other month
    is closed. All decisions that depend on "today" take an explicit
    as_of date so they are deterministic.
    """

    @staticmethod
    @transaction.atomic
    def open_period(account_id: int, month: int, year: int, user=None,
                    as_of: Optional[date] = None) -> OpenPeriodResult:
        """
        Open (month, year) for posting on an account.

        Closes the currently open period, activates the target period and
        seeds a snapshot row for every ledger head that has none, using the
        head's running balance as the opening balance. When the target
        month lies before the previously open (or latest known) period the
        snapshot chain of every head is recalculated from the target month
        onwards.

        Args:
            account_id: Account to open the period for.
            month: Month number (1-12).
            year: Calendar year.
            user: Acting user for the audit entry.
            as_of: Reference "today" for the recalculation boundary.

        Returns:
            OpenPeriodResult. failed_heads lists heads whose recalculation
            failed; the period is open regardless.

        Raises:
            PeriodValidationException: If month/year are out of range.
            NoLedgerHeadsException: If the account has no ledger heads.
            UniqueConstraintViolationException: If a concurrent open won.

        Example:
            >>> result = PeriodClosureService.open_period(account.pk, 3, 2025, as_of=date(2025, 6, 15))
            >>> result.recalculated
            True
        """
        validate_period(month, year)
        as_of = as_of or timezone.localdate()

        with translate_db_errors('open_period'):
            account = Account.objects.select_for_update().get(pk=account_id)
            heads = list(account.ledger_heads.order_by('id'))
            if not heads:
                raise NoLedgerHeadsException(
                    f"No ledger heads found for account {account.name}",
                    details={'account_id': account.pk}
                )

            previous = AccountPeriod.objects.select_for_update().filter(
                account=account, is_open=True
            ).first()
            reference = previous or AccountPeriod.objects.filter(
                account=account
            ).order_by('-year', '-month').first()

            now = timezone.now()
            target_index = month_index(month, year)
            if previous is not None and previous.index != target_index:
                previous.is_open = False
                previous.closed_at = now
                previous.save(update_fields=['is_open', 'closed_at'])

            period, _ = AccountPeriod.objects.get_or_create(
                account=account, month=month, year=year
            )
            if not period.is_open:
                period.is_open = True
                period.opened_at = now
                period.save(update_fields=['is_open', 'opened_at'])

            for head in heads:
                MonthlyLedgerBalance.objects.get_or_create(
                    account=account,
                    ledger_head=head,
                    month=month,
                    year=year,
                    defaults={
                        'period': period,
                        'opening_balance': head.current_balance,
                        'receipts': ZERO,
                        'payments': ZERO,
                        'closing_balance': head.current_balance,
                        'cash_in_hand': ZERO,
                        'cash_in_bank': ZERO,
                    }
                )

            result = OpenPeriodResult(account_id=account.pk, month=month, year=year)
            result.backdated = reference is not None and target_index < reference.index

            if result.backdated:
                cascade = recalculate_account_snapshots(
                    account, date(year, month, 1), as_of=as_of, ledger_heads=heads, user=user
                )
                result.recalculated = bool(cascade.snapshots)
                result.failed_heads = cascade.failed_heads

            AuditService.log_action(
                'AccountPeriod',
                period.pk,
                AuditAction.PERIOD_OPENED,
                details={
                    'account_id': account.pk,
                    'month': month,
                    'year': year,
                    'previous_month': previous.month if previous else None,
                    'previous_year': previous.year if previous else None,
                    'backdated': result.backdated,
                    'failed_heads': result.failed_heads,
                },
                user=user
            )

        LedgerLogger.log_period_opened(account, month, year, result.backdated, user)
        return result

    @staticmethod
    @transaction.atomic
    def close_period(account_id: int, month: int, year: int, user=None) -> ClosePeriodResult:
        """
        Close the open period of an account.

        The month's snapshot rows are finalized from the transactions dated
        in the month (opening balances are kept) and the account's
        last_closed_date moves to the last day of the month. Other months
        are not touched.

        Raises:
            PeriodNotOpenException: If (month, year) is not the open period.
        """
        validate_period(month, year)

        with translate_db_errors('close_period'):
            account = Account.objects.select_for_update().get(pk=account_id)
            period = AccountPeriod.objects.select_for_update().filter(
                account=account, month=month, year=year, is_open=True
            ).first()
            if period is None:
                raise PeriodNotOpenException(
                    f"Period {month:02d}/{year} is not open for account {account.name}",
                    details={'account_id': account.pk, 'month': month, 'year': year}
                )

            rows = MonthlyLedgerBalance.objects.select_for_update().filter(
                account=account, month=month, year=year
            ).select_related('ledger_head')
            next_month_start = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
            for row in rows:
                activity = calculate_activity(row.ledger_head, account, period.first_day, next_month_start)
                row.receipts = activity.receipts
                row.payments = activity.payments
                row.cash_in_hand = activity.cash
                row.cash_in_bank = activity.bank
                row.calculate_closing_balance()
                row.save(update_fields=[
                    'receipts', 'payments', 'cash_in_hand', 'cash_in_bank',
                    'closing_balance', 'last_updated'
                ])

            period.is_open = False
            period.closed_at = timezone.now()
            period.save(update_fields=['is_open', 'closed_at'])

            account.last_closed_date = last_day_of_month(month, year)
            account.save(update_fields=['last_closed_date', 'updated_at'])

            AuditService.log_action(
                'AccountPeriod',
                period.pk,
                AuditAction.PERIOD_CLOSED,
                details={
                    'account_id': account.pk,
                    'month': month,
                    'year': year,
                    'last_closed_date': account.last_closed_date,
                },
                user=user
            )

        LedgerLogger.log_period_closed(account, month, year, user)
        return ClosePeriodResult(
            account_id=account.pk,
            month=month,
            year=year,
            closed=True,
            last_closed_date=account.last_closed_date
        )

    @staticmethod
    @transaction.atomic
    def close_periods(month: Optional[int] = None, year: Optional[int] = None,
                      as_of: Optional[date] = None, user=None) -> BatchCloseResult:
        """
        Close (month, year) on every active account in one atomic run.

        Intended for the month-end job. Accounts whose open period is a
        different month, or that have no open period, are skipped and
        reported. A failure on any account rolls the whole run back.

        Args:
            month: Month to close; defaults to the as_of month.
            year: Year to close; defaults to the as_of year.
            as_of: Reference "today"; defaults to the local date.
            user: Acting user for the audit entries.

        Returns:
            BatchCloseResult with the closed account ids and the skipped
            accounts with the reason.
        """
        as_of = as_of or timezone.localdate()
        month = as_of.month if month is None else month
        year = as_of.year if year is None else year
        validate_period(month, year)

        result = BatchCloseResult(month=month, year=year)
        for account in Account.objects.filter(is_active=True).order_by('id'):
            open_period = AccountPeriod.objects.filter(account=account, is_open=True).first()
            if open_period is None or (open_period.month, open_period.year) != (month, year):
                reason = 'no open period' if open_period is None else \
                    f"open period is {open_period.month:02d}/{open_period.year}"
                logger.warning("Skipping month-end close of %02d/%s for account %s: %s",
                               month, year, account.pk, reason)
                result.skipped.append({
                    'account_id': account.pk,
                    'account': account.name,
                    'reason': reason,
                })
                continue
            PeriodClosureService.close_period(account.pk, month, year, user=user)
            result.closed.append(account.pk)

        logger.info(
            "Month-end close of %02d/%s: %s accounts closed, %s skipped",
            month, year, len(result.closed), len(result.skipped)
        )
        return result

    @staticmethod
    def get_open_period(account_id: int, user=None, as_of: Optional[date] = None) -> AccountPeriod:
        """
        Return the open period of an account, opening the as_of month if none is open.
        """
        period = AccountPeriod.objects.filter(account_id=account_id, is_open=True).first()
        if period is not None:
            return period

        as_of = as_of or timezone.localdate()
        logger.info(
            "No open period for account %s, auto-opening %02d/%s",
            account_id, as_of.month, as_of.year
        )
        PeriodClosureService.open_period(account_id, as_of.month, as_of.year, user=user, as_of=as_of)
        return AccountPeriod.objects.get(account_id=account_id, is_open=True)

    @staticmethod
    @transaction.atomic
    def reopen_period(account_id: int, new_closing_date, user=None) -> Account:
        """
        Move an account's last_closed_date back to an earlier date.

        Args:
            account_id: Account to update.
            new_closing_date: New last closed date (date or ISO string);
                must be earlier than the current one.

        Returns:
            The updated Account.

        Raises:
            PeriodValidationException: If the date is missing, unparsable,
                or not earlier than the current last_closed_date.
        """
        if isinstance(new_closing_date, str):
            new_closing_date = parse_date(new_closing_date)
        if new_closing_date is None:
            raise PeriodValidationException("A valid new closing date is required.")

        account = Account.objects.select_for_update().get(pk=account_id)
        if account.last_closed_date is None:
            raise PeriodValidationException(
                "Account has no closed period to reopen.",
                details={'account_id': account.pk}
            )
        if new_closing_date >= account.last_closed_date:
            raise PeriodValidationException(
                "New closing date must be earlier than the current closing date.",
                details={
                    'account_id': account.pk,
                    'last_closed_date': account.last_closed_date.isoformat(),
                    'new_closing_date': new_closing_date.isoformat(),
                }
            )

        previous_date = account.last_closed_date
        account.last_closed_date = new_closing_date
        account.save(update_fields=['last_closed_date', 'updated_at'])

        AuditService.log_action(
            'Account',
            account.pk,
            AuditAction.PERIOD_REOPENED,
            details={'previous_closed_date': previous_date, 'new_closed_date': new_closing_date},
            user=user
        )
        logger.info(
            "Account %s reopened: last closed date %s -> %s",
            account.pk, previous_date, new_closing_date
        )
        return account

    @staticmethod
    def get_monthly_balances(account_id: int, month: int, year: int) -> List[MonthlyLedgerBalance]:
        """Snapshot rows of an account for one month, ordered by ledger head."""
        validate_period(month, year)
        return list(
            MonthlyLedgerBalance.objects.filter(
                account_id=account_id, month=month, year=year
            ).select_related('ledger_head', 'period').order_by('ledger_head_id')
        )

    @staticmethod
    def ensure_open_periods(as_of: Optional[date] = None, user=None) -> Dict[str, int]:
        """
        Make sure every active account has an open period.

        Accounts without ledger heads are skipped. Returns counts of
        accounts that were opened, already open, and skipped.
        """
        as_of = as_of or timezone.localdate()
        summary = {'opened': 0, 'already_open': 0, 'skipped': 0}

        for account in Account.objects.filter(is_active=True).order_by('id'):
            if AccountPeriod.objects.filter(account=account, is_open=True).exists():
                summary['already_open'] += 1
                continue
            try:
                PeriodClosureService.open_period(
                    account.pk, as_of.month, as_of.year, user=user, as_of=as_of
                )
                summary['opened'] += 1
            except NoLedgerHeadsException:
                logger.warning("Account %s has no ledger heads; no period opened", account.pk)
                summary['skipped'] += 1

        return summary
