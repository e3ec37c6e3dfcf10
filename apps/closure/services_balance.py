"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Balance calculator. Derives ledger head balances from the
             transaction history and rebuilds the chain of monthly
             snapshots forward from a given month.
-------------------------------------------------------------------------
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.core.exceptions import (
    LedgerException, StorageFailureException, translate_db_errors,
)
from apps.core.models import AuditAction
from apps.core.services import AuditService
from apps.closure.models import (
    AccountPeriod, MonthlyLedgerBalance, month_index, month_from_index,
)
from apps.finance.models import (
    Account, LedgerHead, TransactionItem, TransactionStatus, ItemSide, ZERO,
)

logger = logging.getLogger(__name__)


SNAPSHOT_FIELDS = (
    'period_id', 'opening_balance', 'receipts', 'payments',
    'closing_balance', 'cash_in_hand', 'cash_in_bank',
)


@dataclass
class Activity:
    """Aggregated effect of completed transaction items on one ledger head."""

    receipts: Decimal = ZERO
    payments: Decimal = ZERO
    cash: Decimal = ZERO
    bank: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.receipts - self.payments


@dataclass
class SnapshotMonth:
    """One month produced by a cascade."""

    month: int
    year: int
    opening_balance: Decimal
    receipts: Decimal
    payments: Decimal
    closing_balance: Decimal
    cash_in_hand: Decimal
    cash_in_bank: Decimal
    created: bool = False
    changed: bool = False

    def to_dict(self) -> dict:
        return {
            'month': self.month,
            'year': self.year,
            'opening_balance': str(self.opening_balance),
            'receipts': str(self.receipts),
            'payments': str(self.payments),
            'closing_balance': str(self.closing_balance),
            'cash_in_hand': str(self.cash_in_hand),
            'cash_in_bank': str(self.cash_in_bank),
            'created': self.created,
            'changed': self.changed,
        }


@dataclass
class RecalculationResult:
    """Result of recalculating one ledger head's snapshot chain."""

    ledger_head_id: int
    months: List[SnapshotMonth] = field(default_factory=list)

    @property
    def recalculated_months(self) -> int:
        return len(self.months)

    def to_dict(self) -> dict:
        return {
            'ledger_head_id': self.ledger_head_id,
            'recalculated_months': self.recalculated_months,
            'months': [m.to_dict() for m in self.months],
        }


@dataclass
class CascadeResult:
    """Result of recalculating every ledger head of an account."""

    account_id: int
    snapshots: List[RecalculationResult] = field(default_factory=list)
    failed_heads: List[Dict] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed_heads

    def to_dict(self) -> dict:
        return {
            'account_id': self.account_id,
            'snapshots': [s.to_dict() for s in self.snapshots],
            'failed_heads': self.failed_heads,
        }


@dataclass
class ReconciliationReport:
    """Outcome of comparing running balances with the transaction history."""

    checked: int = 0
    fixed: int = 0
    discrepancies: List[Dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'checked': self.checked,
            'fixed': self.fixed,
            'discrepancies': self.discrepancies,
        }


def _month_start(month: int, year: int) -> date:
    return date(year, month, 1)


def _next_month_start(month: int, year: int) -> date:
    next_month, next_year = month_from_index(month_index(month, year) + 1)
    return date(next_year, next_month, 1)


def calculate_activity(
    ledger_head: LedgerHead,
    account: Account,
    from_date: Optional[date],
    to_date: Optional[date]
) -> Activity:
    """
    Sum the completed item effects on a ledger head within a date window.

    Only transactions with status completed count: pending cheques and
    cancelled transactions contribute nothing until (unless) they clear.

    Args:
        ledger_head: Ledger head whose items are summed.
        account: Owning account.
        from_date: Inclusive lower bound on tx_date, or None for no bound.
        to_date: Exclusive upper bound on tx_date, or None for no bound.

    Returns:
        Activity with receipts ('+' items), payments ('-' items) and the
        net cash and bank movement.
    """
    items = TransactionItem.objects.filter(
        ledger_head=ledger_head,
        transaction__account=account,
        transaction__status=TransactionStatus.COMPLETED,
    ).select_related('transaction')
    if from_date is not None:
        items = items.filter(transaction__tx_date__gte=from_date)
    if to_date is not None:
        items = items.filter(transaction__tx_date__lt=to_date)

    activity = Activity()
    for item in items:
        cash_part, bank_part = item.transaction.split_item(item.amount)
        if item.side == ItemSide.PLUS:
            activity.receipts += item.amount
            activity.cash += cash_part
            activity.bank += bank_part
        else:
            activity.payments += item.amount
            activity.cash -= cash_part
            activity.bank -= bank_part
    return activity


def calculate_balance_from_transactions(
    ledger_head: LedgerHead,
    account: Account,
    from_date: Optional[date],
    to_date: date
) -> Decimal:
    """Balance of a ledger head from completed transactions in [from_date, to_date)."""
    return calculate_activity(ledger_head, account, from_date, to_date).net


def calculate_opening_balance(ledger_head: LedgerHead, account: Account, month: int, year: int) -> Decimal:
    """
    Opening balance of a ledger head for a month.

    Uses the previous month's stored closing balance when that snapshot
    exists (December of the prior year for January), otherwise derives it
    from every completed transaction before the first day of the month.
    """
    prev_month, prev_year = month_from_index(month_index(month, year) - 1)
    previous = MonthlyLedgerBalance.objects.filter(
        account=account,
        ledger_head=ledger_head,
        month=prev_month,
        year=prev_year
    ).first()
    if previous is not None:
        return previous.closing_balance
    return calculate_balance_from_transactions(
        ledger_head, account, None, _month_start(month, year)
    )


def snapshots_from(account: Account, month: int, year: int):
    """Snapshot rows of an account dated in or after the given month."""
    return MonthlyLedgerBalance.objects.filter(account=account).filter(
        Q(year__gt=year) | Q(year=year, month__gte=month)
    )


def _upsert_snapshot(account, ledger_head, month, year, values) -> SnapshotMonth:
    """
    Write one month's figures, leaving an unchanged row untouched.

    The period row is created closed when missing; its open flag is never
    modified here.
    """
    period, _ = AccountPeriod.objects.get_or_create(
        account=account, month=month, year=year
    )
    values = dict(values, period_id=period.pk)

    snapshot = MonthlyLedgerBalance.objects.select_for_update().filter(
        account=account, ledger_head=ledger_head, month=month, year=year
    ).first()

    created = changed = False
    if snapshot is None:
        MonthlyLedgerBalance.objects.create(
            account=account, ledger_head=ledger_head, month=month, year=year, **values
        )
        created = changed = True
    else:
        dirty = [name for name in SNAPSHOT_FIELDS if getattr(snapshot, name) != values[name]]
        if dirty:
            for name in dirty:
                setattr(snapshot, name, values[name])
            snapshot.save(update_fields=dirty + ['last_updated'])
            changed = True

    return SnapshotMonth(
        month=month,
        year=year,
        opening_balance=values['opening_balance'],
        receipts=values['receipts'],
        payments=values['payments'],
        closing_balance=values['closing_balance'],
        cash_in_hand=values['cash_in_hand'],
        cash_in_bank=values['cash_in_bank'],
        created=created,
        changed=changed,
    )


@transaction.atomic
def recalculate_monthly_snapshots(
    account: Account,
    ledger_head: LedgerHead,
    from_date: date,
    as_of: Optional[date] = None,
    user=None
) -> RecalculationResult:
    """
    Rebuild a ledger head's monthly snapshots forward from a month.

    The first month's opening balance is derived from the transaction
    history before that month, never from the stored previous snapshot.
    Every later month opens with the closing balance just computed for
    the month before it. Months without a stored row are created with
    their actual (possibly zero) activity. The walk ends with the later
    of the last stored snapshot and the as_of month.

    Running the function twice with the same inputs leaves the rows of
    the second run untouched.

    Args:
        account: Owning account.
        ledger_head: Ledger head to recalculate.
        from_date: Any date in the first month to rebuild.
        as_of: Reference "today"; defaults to the local date.
        user: Acting user for the audit entry.

    Returns:
        RecalculationResult listing every month written.
    """
    as_of = as_of or timezone.localdate()
    start = month_index(from_date.month, from_date.year)

    last_snapshot = MonthlyLedgerBalance.objects.filter(
        account=account, ledger_head=ledger_head
    ).order_by('-year', '-month').first()
    end = month_index(as_of.month, as_of.year)
    if last_snapshot is not None:
        end = max(end, month_index(last_snapshot.month, last_snapshot.year))

    result = RecalculationResult(ledger_head_id=ledger_head.pk)

    with translate_db_errors('recalculate_monthly_snapshots'):
        opening = calculate_balance_from_transactions(
            ledger_head, account, None, _month_start(from_date.month, from_date.year)
        )

        for index in range(start, end + 1):
            month, year = month_from_index(index)
            activity = calculate_activity(
                ledger_head, account, _month_start(month, year), _next_month_start(month, year)
            )
            closing = opening + activity.receipts - activity.payments
            result.months.append(_upsert_snapshot(account, ledger_head, month, year, {
                'opening_balance': opening,
                'receipts': activity.receipts,
                'payments': activity.payments,
                'closing_balance': closing,
                'cash_in_hand': activity.cash,
                'cash_in_bank': activity.bank,
            }))
            opening = closing

        if any(m.changed for m in result.months):
            AuditService.log_action(
                'MonthlyLedgerBalance',
                ledger_head.pk,
                AuditAction.PERIOD_RECALCULATED,
                details={
                    'account_id': account.pk,
                    'from_month': from_date.month,
                    'from_year': from_date.year,
                    'recalculated_months': result.recalculated_months,
                    'changed_months': [f"{m.month:02d}/{m.year}" for m in result.months if m.changed],
                },
                user=user
            )

    logger.debug(
        "Recalculated %s months for ledger head %s from %02d/%s",
        result.recalculated_months, ledger_head.pk, from_date.month, from_date.year
    )
    return result


def recalculate_account_snapshots(
    account: Account,
    from_date: date,
    as_of: Optional[date] = None,
    ledger_heads=None,
    user=None
) -> CascadeResult:
    """
    Rebuild the snapshot chain of every ledger head of an account.

    This is the single entry point used by period opens, backdated
    postings and cheque clearings. Each head runs in its own savepoint:
    a head that fails is rolled back, logged and reported, and the
    remaining heads are still processed. Storage failures abort the
    whole operation.

    Args:
        account: Account to recalculate.
        from_date: Any date in the first month to rebuild.
        as_of: Reference "today"; defaults to the local date.
        ledger_heads: Restrict the cascade to these heads (default: all).
        user: Acting user for audit entries.

    Returns:
        CascadeResult with one RecalculationResult per successful head
        and the failed heads with their errors.
    """
    heads = ledger_heads if ledger_heads is not None else account.ledger_heads.order_by('id')
    result = CascadeResult(account_id=account.pk)

    for head in heads:
        try:
            with transaction.atomic():
                result.snapshots.append(
                    recalculate_monthly_snapshots(account, head, from_date, as_of=as_of, user=user)
                )
        except StorageFailureException:
            raise
        except (LedgerException, ValidationError) as exc:
            logger.error(
                "Snapshot recalculation failed for ledger head %s (%s) of account %s: %s",
                head.pk, head.name, account.pk, exc
            )
            result.failed_heads.append({
                'ledger_head_id': head.pk,
                'ledger_head': head.name,
                'error': str(exc),
            })

    logger.info(
        "Cascade for account %s from %02d/%s: %s heads recalculated, %s failed",
        account.pk, from_date.month, from_date.year,
        len(result.snapshots), len(result.failed_heads)
    )
    return result


@transaction.atomic
def reconcile_balances(account: Optional[Account] = None, fix: bool = False, user=None) -> ReconciliationReport:
    """
    Compare each ledger head's running balance with its transaction history.

    The expected balance is the opening balance of the head's earliest
    snapshot plus every completed transaction dated in or after that
    month. Heads without snapshots have no baseline and are skipped.

    Args:
        account: Limit the check to one account (default: all accounts).
        fix: Overwrite drifted balances with the expected figure. The
            bank balance is kept and the cash balance absorbs the
            difference.
        user: Acting user for audit entries.

    Returns:
        ReconciliationReport listing every discrepancy found.
    """
    heads = LedgerHead.objects.select_related('account').order_by('account_id', 'id')
    if account is not None:
        heads = heads.filter(account=account)

    report = ReconciliationReport()
    touched_accounts = set()

    for head in heads.select_for_update():
        first = MonthlyLedgerBalance.objects.filter(
            account=head.account, ledger_head=head
        ).order_by('year', 'month').first()
        if first is None:
            continue

        report.checked += 1
        expected = first.opening_balance + calculate_activity(
            head, head.account, _month_start(first.month, first.year), None
        ).net
        split_ok = head.current_balance == head.cash_balance + head.bank_balance
        if expected == head.current_balance and split_ok:
            continue

        discrepancy = {
            'ledger_head_id': head.pk,
            'ledger_head': head.name,
            'account_id': head.account_id,
            'current_balance': str(head.current_balance),
            'expected_balance': str(expected),
            'cash_balance': str(head.cash_balance),
            'bank_balance': str(head.bank_balance),
        }
        report.discrepancies.append(discrepancy)
        logger.warning(
            "Balance discrepancy on ledger head %s (%s): running %s, expected %s",
            head.pk, head.name, head.current_balance, expected
        )

        if fix:
            old_balance = head.current_balance
            head.apply_delta(expected - head.bank_balance - head.cash_balance, ZERO)
            AuditService.log_action(
                'LedgerHead',
                head.pk,
                AuditAction.BALANCE_RECONCILED,
                details={'old_balance': old_balance, 'new_balance': head.current_balance},
                user=user
            )
            touched_accounts.add(head.account)
            report.fixed += 1

    for touched in touched_accounts:
        touched.refresh_totals()

    return report
