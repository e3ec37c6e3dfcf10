"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Transaction engine. Validates and posts double-entry
             transactions, maintains ledger head running balances and
             creates pending cheques.
-------------------------------------------------------------------------
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Sum
from django.utils.dateparse import parse_date

from apps.core.exceptions import (
    InsufficientFundsException, InvalidChequeStateException, PeriodClosedException,
    TransactionValidationException, UniqueConstraintViolationException,
    translate_db_errors,
)
from apps.core.models import AuditAction
from apps.core.services import AuditService
from apps.closure.models import AccountPeriod, month_from_index, month_index
from apps.closure.services import PeriodClosureService
from apps.closure.services_balance import recalculate_account_snapshots, snapshots_from
from apps.finance.logging import LedgerLogger
from apps.finance.models import (
    Account, Booklet, CashType, Cheque, ChequeStatus, Donor, ItemSide, LedgerHead,
    Transaction, TransactionItem, TransactionStatus, TransactionType,
    CENT, ZERO,
)

logger = logging.getLogger(__name__)


@dataclass
class PostingResult:
    """Outcome of posting or voiding a transaction."""

    transaction_id: str
    status: str

    def to_dict(self) -> dict:
        return {'transaction_id': self.transaction_id, 'status': self.status}


def parse_amount(value, label: str, errors: List[str], required: bool = True) -> Optional[Decimal]:
    """Parse a money value, collecting a message in errors on failure."""
    if value is None or value == '':
        if required:
            errors.append(f"{label} is required.")
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        errors.append(f"{label} must be a number.")
        return None
    if not amount.is_finite():
        errors.append(f"{label} must be a number.")
        return None
    if amount != amount.quantize(CENT):
        errors.append(f"{label} cannot have more than two decimal places.")
        return None
    return amount.quantize(CENT)


def parse_day(value, label: str, errors: List[str]) -> Optional[date]:
    """Parse a date or ISO date string, collecting a message in errors on failure."""
    if isinstance(value, date):
        return value
    if not value:
        errors.append(f"{label} is required.")
        return None
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        errors.append(f"{label} must be a valid date (YYYY-MM-DD).")
    return parsed


def parse_pk(value, label: str, errors: List[str], required: bool = False) -> Optional[int]:
    """Parse an id from a payload (int or numeric string), collecting a message in errors on failure."""
    if value is None or value == '':
        if required:
            errors.append(f"{label} is required.")
        return None
    pk = None if isinstance(value, bool) else _as_pk(value)
    if pk is None or pk <= 0:
        errors.append(f"{label} must be a valid id, got {value!r}.")
        return None
    return pk


def resolve_split(cash_type: str, amount: Decimal, cash_amount: Optional[Decimal],
                  bank_amount: Optional[Decimal], errors: List[str]) -> Tuple[Decimal, Decimal]:
    """
    Work out the cash and bank portions of a transaction.

    Cheques are always settled through the bank. Single-mode instruments
    derive the split when it is omitted and must match it when given;
    'multiple' requires both portions to add up to the amount.
    """
    if cash_type == CashType.CHEQUE:
        return ZERO, amount

    for label, value in (('Cash amount', cash_amount), ('Bank amount', bank_amount)):
        if value is not None and value < ZERO:
            errors.append(f"{label} cannot be negative.")

    if cash_type == CashType.MULTIPLE:
        cash_amount = cash_amount if cash_amount is not None else ZERO
        bank_amount = bank_amount if bank_amount is not None else ZERO
    elif cash_type == CashType.CASH:
        if cash_amount is None and bank_amount is None:
            cash_amount, bank_amount = amount, ZERO
        elif bank_amount:
            errors.append("Cash transactions cannot carry a bank amount.")
    else:
        if cash_amount is None and bank_amount is None:
            cash_amount, bank_amount = ZERO, amount
        elif cash_amount:
            errors.append(f"{cash_type} transactions cannot carry a cash amount.")

    cash_amount = cash_amount if cash_amount is not None else ZERO
    bank_amount = bank_amount if bank_amount is not None else ZERO
    if cash_amount + bank_amount != amount:
        errors.append(
            f"Cash amount ({cash_amount}) plus bank amount ({bank_amount}) "
            f"must equal the transaction amount ({amount})."
        )
    return cash_amount, bank_amount


def apply_transaction_effects(tx: Transaction, reverse: bool = False) -> Dict[int, LedgerHead]:
    """
    Apply (or undo) a transaction's items to the ledger head balances.

    Each item moves its head by its signed amount, split between the cash
    and bank balances by the transaction's split. Heads are locked before
    they are touched.

    Returns:
        The locked ledger heads keyed by id.
    """
    items = list(tx.items.all())
    heads = {
        head.pk: head
        for head in LedgerHead.objects.select_for_update().filter(
            pk__in={item.ledger_head_id for item in items}
        )
    }
    direction = -1 if reverse else 1
    for item in items:
        cash_part, bank_part = tx.split_item(item.amount)
        sign = direction if item.side == ItemSide.PLUS else -direction
        heads[item.ledger_head_id].apply_delta(sign * cash_part, sign * bank_part)
    return heads


def pending_cheque_commitments(ledger_head: LedgerHead) -> Decimal:
    """Total of '-' items on a head that belong to pending debit cheques."""
    total = TransactionItem.objects.filter(
        ledger_head=ledger_head,
        side=ItemSide.MINUS,
        transaction__status=TransactionStatus.PENDING,
        transaction__cash_type=CashType.CHEQUE,
    ).aggregate(total=Sum('amount'))['total']
    return total or ZERO


def available_bank_balance(ledger_head: LedgerHead) -> Decimal:
    """Bank balance of a head less the amount promised to pending cheques."""
    return ledger_head.bank_balance - pending_cheque_commitments(ledger_head)


def cascade_if_history_changed(account: Account, tx_date: date, head_ids, user=None, as_of=None) -> None:
    """
    Rebuild snapshots after a balance change dated tx_date.

    A change in a month before the open period (backdated postings, late
    cheque clearings) makes that month's row stale. A change in the open
    month makes every later row stale, which happens after a backdated
    open while months after it already have snapshots.
    """
    tx_index = month_index(tx_date.month, tx_date.year)
    open_period = AccountPeriod.objects.filter(account=account, is_open=True).first()
    if open_period is None or tx_index < open_period.index:
        first_stale = tx_index
    else:
        first_stale = tx_index + 1

    head_ids = set(head_ids)
    stale_month, stale_year = month_from_index(first_stale)
    stale = snapshots_from(account, stale_month, stale_year).filter(
        ledger_head_id__in=head_ids
    ).exists()
    if not stale:
        return
    cascade = recalculate_account_snapshots(
        account,
        tx_date,
        as_of=as_of,
        ledger_heads=LedgerHead.objects.filter(pk__in=head_ids).order_by('id'),
        user=user
    )
    if cascade.failed_heads:
        logger.error(
            "Snapshot cascade from %s for account %s left %s heads stale: %s",
            tx_date, account.pk, len(cascade.failed_heads), cascade.failed_heads
        )


class TransactionService:
    """
    Service class for posting and voiding transactions.

    Input is a plain dictionary as received from an API payload:

        {
            'account_id': 1,
            'ledger_head_id': 4,
            'amount': '500.00',
            'tx_type': 'credit',
            'cash_type': 'cash',
            'cash_amount': '500.00',         # optional for single-mode types
            'bank_amount': '0.00',
            'tx_date': '2025-06-10',
            'donor_id': None,
            'booklet_id': 2, 'receipt_no': 101,   # credit only
            'description': '',
            'items': [{'ledger_head_id': 4, 'amount': '500.00', 'side': '+'}],
            'cheque': {'cheque_number': '000123', 'bank_name': 'HBL',
                       'issue_date': '2025-06-10', 'due_date': '2025-06-20'},
        }
    """

    @staticmethod
    def _clean_input(data: dict, errors: List[str]) -> dict:
        cleaned = {
            'account_id': parse_pk(data.get('account_id'), 'Account', errors, required=True),
            'ledger_head_id': parse_pk(data.get('ledger_head_id'), 'Ledger head', errors, required=True),
            'donor_id': parse_pk(data.get('donor_id'), 'Donor', errors),
            'booklet_id': parse_pk(data.get('booklet_id'), 'Booklet', errors),
            'receipt_no': data.get('receipt_no'),
            'description': data.get('description') or '',
            'tx_type': data.get('tx_type'),
            'cash_type': data.get('cash_type') or CashType.CASH,
        }
        if cleaned['tx_type'] not in TransactionType.values:
            errors.append(f"Invalid transaction type: {cleaned['tx_type']}.")
        if cleaned['cash_type'] not in CashType.values:
            errors.append(f"Invalid payment mode: {cleaned['cash_type']}.")

        amount = parse_amount(data.get('amount'), 'Amount', errors)
        if amount is not None and amount <= ZERO:
            errors.append("Amount must be greater than zero.")
            amount = None
        cleaned['amount'] = amount
        cleaned['tx_date'] = parse_day(data.get('tx_date'), 'Transaction date', errors)

        if amount is not None and cleaned['cash_type'] in CashType.values:
            cleaned['cash_amount'], cleaned['bank_amount'] = resolve_split(
                cleaned['cash_type'],
                amount,
                parse_amount(data.get('cash_amount'), 'Cash amount', errors, required=False),
                parse_amount(data.get('bank_amount'), 'Bank amount', errors, required=False),
                errors
            )

        if cleaned['tx_type'] != TransactionType.CREDIT and (cleaned['booklet_id'] or cleaned['receipt_no']):
            errors.append("Booklet and receipt number are only allowed on credit transactions.")
        if cleaned['receipt_no'] and not cleaned['booklet_id']:
            errors.append("A receipt number requires a booklet.")

        raw_items = data.get('items') or []
        if not isinstance(raw_items, list):
            errors.append("Items must be a list.")
            raw_items = []
        items = []
        for position, raw in enumerate(raw_items, start=1):
            if not isinstance(raw, dict):
                errors.append(f"Item {position} must be an object with ledger_head_id, amount and side.")
                continue
            item_amount = parse_amount(raw.get('amount'), f"Item {position} amount", errors)
            if item_amount is not None and item_amount <= ZERO:
                errors.append(f"Item {position} amount must be greater than zero.")
            if raw.get('side') not in ItemSide.values:
                errors.append(f"Item {position} side must be '+' or '-'.")
            items.append({
                'ledger_head_id': parse_pk(
                    raw.get('ledger_head_id'), f"Item {position} ledger head", errors, required=True
                ),
                'amount': item_amount,
                'side': raw.get('side'),
            })
        if not items and amount is not None and cleaned['tx_type'] in TransactionType.values:
            items.append({
                'ledger_head_id': cleaned['ledger_head_id'],
                'amount': amount,
                'side': ItemSide.PLUS if cleaned['tx_type'] == TransactionType.CREDIT else ItemSide.MINUS,
            })
        cleaned['items'] = items

        if amount is not None and cleaned['tx_type'] in TransactionType.values and raw_items \
                and all(item['amount'] is not None and item['side'] in ItemSide.values for item in items):
            signed_total = sum(
                (item['amount'] if item['side'] == ItemSide.PLUS else -item['amount'] for item in items),
                ZERO
            )
            expected = amount if cleaned['tx_type'] == TransactionType.CREDIT else -amount
            if signed_total != expected:
                errors.append(
                    f"Transaction items do not balance: items net to {signed_total}, "
                    f"expected {expected}."
                )

        if cleaned['cash_type'] == CashType.CHEQUE:
            cheque = data.get('cheque') or {}
            cheque_number = str(cheque.get('cheque_number') or '').strip()
            bank_name = str(cheque.get('bank_name') or '').strip()
            if not cheque_number:
                errors.append("Cheque number is required for cheque transactions.")
            if not bank_name:
                errors.append("Bank name is required for cheque transactions.")
            issue_date = parse_day(cheque.get('issue_date'), 'Cheque issue date', errors)
            due_date = parse_day(cheque.get('due_date'), 'Cheque due date', errors)
            if issue_date and due_date and due_date < issue_date:
                errors.append("Cheque due date cannot be before the issue date.")
            cleaned['cheque'] = {
                'cheque_number': cheque_number,
                'bank_name': bank_name,
                'issue_date': issue_date,
                'due_date': due_date,
            }
        return cleaned

    @staticmethod
    def _check_funds(tx: Transaction, items: List[dict], heads: Dict[int, LedgerHead]) -> None:
        """
        Reject debits that the source heads cannot cover.

        Cheques are checked against the available bank balance (bank balance
        less pending cheque commitments); other debits against the cash and
        bank balances they draw on.
        """
        cash_needed: Dict[int, Decimal] = {}
        bank_needed: Dict[int, Decimal] = {}
        for item in items:
            cash_part, bank_part = tx.split_item(item['amount'])
            sign = -1 if item['side'] == ItemSide.PLUS else 1
            head_id = item['ledger_head_id']
            cash_needed[head_id] = cash_needed.get(head_id, ZERO) + sign * cash_part
            bank_needed[head_id] = bank_needed.get(head_id, ZERO) + sign * bank_part

        shortfalls = []
        for head_id, head in heads.items():
            cash_required = cash_needed.get(head_id, ZERO)
            bank_required = bank_needed.get(head_id, ZERO)
            if tx.is_cheque:
                available = available_bank_balance(head)
                if bank_required > ZERO and bank_required > available:
                    shortfalls.append(
                        f"Insufficient available bank balance in {head.name}. "
                        f"Available: {available}, Required: {bank_required}"
                    )
                continue
            if cash_required > ZERO and cash_required > head.cash_balance:
                shortfalls.append(
                    f"Insufficient cash balance in {head.name}. "
                    f"Available: {head.cash_balance}, Required: {cash_required}"
                )
            if bank_required > ZERO and bank_required > head.bank_balance:
                shortfalls.append(
                    f"Insufficient bank balance in {head.name}. "
                    f"Available: {head.bank_balance}, Required: {bank_required}"
                )
        if shortfalls:
            raise InsufficientFundsException(errors=shortfalls)

    @staticmethod
    @transaction.atomic
    def post_transaction(data: dict, user=None, as_of: Optional[date] = None,
                         allow_backdated: bool = False) -> PostingResult:
        """
        Validate and post a transaction.

        Everything happens in one atomic block: the transaction and its
        items are written, a booklet page is consumed, and either a pending
        cheque is created (no balance change) or the items are applied to
        the ledger head balances.

        Args:
            data: Transaction payload (see class docstring).
            user: Acting user, stored as created_by.
            as_of: Reference "today" used when the account has no open
                period yet and for snapshot recalculation.
            allow_backdated: Administrative override that permits posting
                into a month before the open period.

        Snapshot rows made stale by the posting (the backdated month, or
        months after the open period left by a backdated open) are
        recalculated in the same transaction.

        Returns:
            PostingResult with the new transaction id and its status.

        Raises:
            TransactionValidationException: If the input is invalid or
                the items do not balance.
            InsufficientFundsException: If a debit cannot be covered.
            PeriodClosedException: If tx_date is outside the open period.
            UniqueConstraintViolationException: On duplicate cheque or
                receipt numbers.
        """
        errors: List[str] = []
        cleaned = TransactionService._clean_input(data, errors)
        if errors:
            raise TransactionValidationException(errors=errors)

        with translate_db_errors('post_transaction'):
            account = Account.objects.select_for_update().filter(pk=cleaned['account_id']).first()
            if account is None:
                raise TransactionValidationException(errors=[f"Account {cleaned['account_id']} does not exist."])

            head_ids = {cleaned['ledger_head_id']} | {item['ledger_head_id'] for item in cleaned['items']}
            heads = {
                head.pk: head
                for head in LedgerHead.objects.select_for_update().filter(account=account, pk__in=head_ids)
            }
            missing = sorted(str(head_id) for head_id in head_ids if head_id not in heads)
            if missing:
                raise TransactionValidationException(
                    errors=[f"Ledger head {head_id} does not belong to account {account.name}." for head_id in missing]
                )

            donor = None
            if cleaned['donor_id']:
                donor = Donor.objects.filter(pk=cleaned['donor_id']).first()
                if donor is None:
                    raise TransactionValidationException(errors=[f"Donor {cleaned['donor_id']} does not exist."])

            open_period = PeriodClosureService.get_open_period(account.pk, user=user, as_of=as_of)
            tx_date = cleaned['tx_date']
            backdated = False
            if not open_period.contains(tx_date):
                tx_index = month_index(tx_date.month, tx_date.year)
                if allow_backdated and tx_index < open_period.index:
                    backdated = True
                    logger.warning(
                        "Backdated posting into %02d/%s for account %s (open period %02d/%s)",
                        tx_date.month, tx_date.year, account.pk, open_period.month, open_period.year
                    )
                else:
                    raise PeriodClosedException(
                        f"Cannot post on {tx_date}: the open period for {account.name} "
                        f"is {open_period.month:02d}/{open_period.year}.",
                        details={
                            'tx_date': tx_date.isoformat(),
                            'open_month': open_period.month,
                            'open_year': open_period.year,
                        }
                    )

            is_cheque = cleaned['cash_type'] == CashType.CHEQUE
            if is_cheque and Cheque.objects.filter(
                account=account, cheque_number=cleaned['cheque']['cheque_number']
            ).exists():
                raise UniqueConstraintViolationException(
                    f"Cheque number {cleaned['cheque']['cheque_number']} already exists for this account.",
                    details={'cheque_number': cleaned['cheque']['cheque_number']}
                )

            tx = Transaction(
                account=account,
                ledger_head=heads[cleaned['ledger_head_id']],
                donor=donor,
                amount=cleaned['amount'],
                tx_type=cleaned['tx_type'],
                cash_type=cleaned['cash_type'],
                cash_amount=cleaned['cash_amount'],
                bank_amount=cleaned['bank_amount'],
                tx_date=tx_date,
                status=TransactionStatus.PENDING if is_cheque else TransactionStatus.COMPLETED,
                description=cleaned['description'],
            )

            if tx.tx_type == TransactionType.DEBIT and settings.LEDGER_ENFORCE_SUFFICIENT_FUNDS:
                TransactionService._check_funds(tx, cleaned['items'], {
                    item['ledger_head_id']: heads[item['ledger_head_id']] for item in cleaned['items']
                })

            if cleaned['booklet_id']:
                booklet = Booklet.objects.select_for_update().filter(pk=cleaned['booklet_id']).first()
                if booklet is None:
                    raise TransactionValidationException(errors=[f"Booklet {cleaned['booklet_id']} does not exist."])
                try:
                    tx.receipt_no = booklet.take_page(_as_receipt(cleaned['receipt_no']))
                except ValidationError as exc:
                    raise TransactionValidationException(errors=exc.messages) from exc
                tx.booklet = booklet

            tx.save_with_user(user)
            TransactionItem.objects.bulk_create([
                TransactionItem(
                    transaction=tx,
                    ledger_head_id=item['ledger_head_id'],
                    amount=item['amount'],
                    side=item['side'],
                )
                for item in cleaned['items']
            ])

            if is_cheque:
                Cheque.objects.create(
                    transaction=tx,
                    account=account,
                    ledger_head=tx.ledger_head,
                    cheque_number=cleaned['cheque']['cheque_number'],
                    bank_name=cleaned['cheque']['bank_name'],
                    issue_date=cleaned['cheque']['issue_date'],
                    due_date=cleaned['cheque']['due_date'],
                    status=ChequeStatus.PENDING,
                    description=tx.description,
                )
            else:
                apply_transaction_effects(tx)
                account.refresh_totals()

            AuditService.log_action(
                'Transaction',
                tx.pk,
                AuditAction.TRANSACTION_POSTED,
                details={
                    'account_id': account.pk,
                    'amount': tx.amount,
                    'tx_type': tx.tx_type,
                    'cash_type': tx.cash_type,
                    'tx_date': tx.tx_date,
                    'status': tx.status,
                    'backdated': backdated,
                },
                user=user
            )

            if not is_cheque:
                cascade_if_history_changed(
                    account, tx.tx_date, (item['ledger_head_id'] for item in cleaned['items']),
                    user=user, as_of=as_of
                )

        LedgerLogger.log_transaction_posted(tx, user)
        return PostingResult(transaction_id=str(tx.pk), status=tx.status)

    @staticmethod
    @transaction.atomic
    def void_transaction(transaction_id, user=None, as_of: Optional[date] = None) -> PostingResult:
        """
        Delete a transaction and reverse its balance effect.

        Only transactions dated in the open period can be voided. Pending
        cheques must be cancelled instead. The booklet page is returned and
        later snapshot rows of the affected heads are recalculated.

        Raises:
            InvalidChequeStateException: If the transaction is a pending cheque.
            PeriodClosedException: If the transaction's month is not open.
        """
        with translate_db_errors('void_transaction'):
            account_id = Transaction.objects.values_list('account_id', flat=True).get(pk=transaction_id)
            account = Account.objects.select_for_update().get(pk=account_id)
            tx = Transaction.objects.select_for_update().select_related(
                'account', 'booklet', 'ledger_head'
            ).get(pk=transaction_id)

            if tx.is_cheque and tx.status == TransactionStatus.PENDING:
                raise InvalidChequeStateException(
                    "Cannot void a pending cheque transaction; cancel the cheque instead.",
                    details={'transaction_id': str(tx.pk)}
                )

            open_period = PeriodClosureService.get_open_period(account.pk, user=user, as_of=as_of)
            if not open_period.contains(tx.tx_date):
                raise PeriodClosedException(
                    f"Cannot void a transaction dated {tx.tx_date}: the period is closed.",
                    details={
                        'tx_date': tx.tx_date.isoformat(),
                        'open_month': open_period.month,
                        'open_year': open_period.year,
                    }
                )

            completed = tx.status == TransactionStatus.COMPLETED
            head_ids = set(tx.items.values_list('ledger_head_id', flat=True))
            tx_date = tx.tx_date
            if completed:
                apply_transaction_effects(tx, reverse=True)
            if tx.booklet is not None and tx.receipt_no is not None:
                tx.booklet.return_page(tx.receipt_no)

            details = {
                'account_id': account.pk,
                'amount': tx.amount,
                'tx_type': tx.tx_type,
                'tx_date': tx.tx_date,
                'status': tx.status,
            }
            tx_pk = str(tx.pk)
            LedgerLogger.log_transaction_voided(tx, user)
            tx.delete()
            account.refresh_totals()

            AuditService.log_action(
                'Transaction', tx_pk, AuditAction.TRANSACTION_VOIDED, details=details, user=user
            )

            if completed:
                cascade_if_history_changed(account, tx_date, head_ids, user=user, as_of=as_of)

        return PostingResult(transaction_id=tx_pk, status='voided')


def _as_pk(value) -> Optional[int]:
    """Normalize an id from a payload (int or numeric string)."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _as_receipt(value) -> Optional[int]:
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise TransactionValidationException(errors=["Receipt number must be an integer."]) from exc
