"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Finance models: accounts, ledger heads with running
             balances, receipt booklets, donors, double-entry
             transactions and cheques.
-------------------------------------------------------------------------
"""
import uuid
from decimal import Decimal
from typing import Optional

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Sum
from django.utils.translation import gettext_lazy as _

from apps.core.exceptions import InvalidChequeStateException
from apps.core.mixins import TimeStampedMixin, AuditLogMixin, StatusMixin


ZERO = Decimal('0.00')
CENT = Decimal('0.01')


def money_field(verbose_name, **kwargs):
    """DecimalField used for every monetary column."""
    kwargs.setdefault('default', ZERO)
    return models.DecimalField(
        max_digits=15,
        decimal_places=2,
        verbose_name=verbose_name,
        **kwargs
    )


class HeadType(models.TextChoices):
    """Classification of a ledger head."""
    DEBIT = 'debit', _('Debit')
    CREDIT = 'credit', _('Credit')


class TransactionType(models.TextChoices):
    """Direction of a transaction relative to the organization."""
    CREDIT = 'credit', _('Credit (Money Received)')
    DEBIT = 'debit', _('Debit (Money Paid)')


class CashType(models.TextChoices):
    """Payment instrument of a transaction."""
    CASH = 'cash', _('Cash')
    BANK = 'bank', _('Bank Transfer')
    UPI = 'upi', _('UPI')
    CARD = 'card', _('Card')
    NETBANK = 'netbank', _('Net Banking')
    CHEQUE = 'cheque', _('Cheque')
    MULTIPLE = 'multiple', _('Cash and Bank')


# Instruments that settle entirely through the bank sub-balance
BANK_CASH_TYPES = frozenset({
    CashType.BANK, CashType.UPI, CashType.CARD, CashType.NETBANK, CashType.CHEQUE,
})


class TransactionStatus(models.TextChoices):
    """Lifecycle status of a transaction."""
    PENDING = 'pending', _('Pending')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')


class ItemSide(models.TextChoices):
    """Side of a transaction item: '+' increases a head, '-' decreases it."""
    PLUS = '+', _('Increase')
    MINUS = '-', _('Decrease')


class ChequeStatus(models.TextChoices):
    """Deferred-settlement states of a cheque."""
    PENDING = 'pending', _('Pending')
    CLEARED = 'cleared', _('Cleared')
    CANCELLED = 'cancelled', _('Cancelled')


class Account(TimeStampedMixin, StatusMixin):
    """
    Top-level book of accounts (e.g. a trust's general fund).

    The balance columns are denormalized totals of the account's ledger
    heads and are refreshed by the services after every balance change.

    Attributes:
        name: Unique account name.
        opening_balance: Balance when the account was set up.
        closing_balance: Sum of the ledger heads' current balances.
        cash_balance: Sum of the ledger heads' cash balances.
        bank_balance: Sum of the ledger heads' bank balances.
        last_closed_date: Last day of the most recently closed period.
    """

    name = models.CharField(
        max_length=150,
        unique=True,
        verbose_name=_('Account Name')
    )
    opening_balance = money_field(_('Opening Balance'))
    closing_balance = money_field(_('Closing Balance'))
    cash_balance = money_field(_('Cash Balance'))
    bank_balance = money_field(_('Bank Balance'))
    last_closed_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_('Last Closed Date'),
        help_text=_('Last day of the most recently closed accounting period.')
    )

    class Meta:
        verbose_name = _('Account')
        verbose_name_plural = _('Accounts')
        ordering = ['name']

    def __str__(self) -> str:
        return self.name

    def refresh_totals(self) -> None:
        """Recompute the denormalized balance totals from the ledger heads."""
        totals = self.ledger_heads.aggregate(
            current=Sum('current_balance'),
            cash=Sum('cash_balance'),
            bank=Sum('bank_balance'),
        )
        self.closing_balance = totals['current'] or ZERO
        self.cash_balance = totals['cash'] or ZERO
        self.bank_balance = totals['bank'] or ZERO
        self.save(update_fields=['closing_balance', 'cash_balance', 'bank_balance', 'updated_at'])


class LedgerHead(TimeStampedMixin, StatusMixin):
    """
    Named bucket within an account that carries a running balance.

    current_balance is always cash_balance + bank_balance; the services
    only ever move the three columns together.
    """

    account = models.ForeignKey(
        Account,
        on_delete=models.CASCADE,
        related_name='ledger_heads',
        verbose_name=_('Account')
    )
    name = models.CharField(
        max_length=150,
        verbose_name=_('Ledger Head Name')
    )
    head_type = models.CharField(
        max_length=10,
        choices=HeadType.choices,
        default=HeadType.CREDIT,
        verbose_name=_('Head Type')
    )
    current_balance = money_field(_('Current Balance'))
    cash_balance = money_field(_('Cash Balance'))
    bank_balance = money_field(_('Bank Balance'))

    class Meta:
        verbose_name = _('Ledger Head')
        verbose_name_plural = _('Ledger Heads')
        ordering = ['account', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['account', 'name'],
                name='unique_ledger_head_per_account'
            )
        ]

    def __str__(self) -> str:
        return f"{self.account.name} / {self.name}"

    def clean(self) -> None:
        if self.current_balance != self.cash_balance + self.bank_balance:
            raise ValidationError(
                _('Current balance must equal cash balance plus bank balance.')
            )

    def apply_delta(self, cash_delta: Decimal, bank_delta: Decimal) -> None:
        """
        Move the running balances by a signed cash and bank amount.

        The caller is expected to hold a row lock on this head.
        """
        self.cash_balance += cash_delta
        self.bank_balance += bank_delta
        self.current_balance = self.cash_balance + self.bank_balance
        self.save(update_fields=['current_balance', 'cash_balance', 'bank_balance', 'updated_at'])


class Donor(TimeStampedMixin):
    """Person or organization that contributes money to an account."""

    name = models.CharField(max_length=150, verbose_name=_('Donor Name'))
    phone = models.CharField(max_length=30, blank=True, verbose_name=_('Phone'))
    email = models.EmailField(blank=True, verbose_name=_('Email'))
    address = models.TextField(blank=True, verbose_name=_('Address'))

    class Meta:
        verbose_name = _('Donor')
        verbose_name_plural = _('Donors')
        ordering = ['name']

    def __str__(self) -> str:
        return self.name


class Booklet(TimeStampedMixin, StatusMixin):
    """
    Pre-printed receipt booklet.

    pages_left holds the receipt numbers not yet used. Credit
    transactions consume a page; voiding a transaction returns it.

    Attributes:
        booklet_no: Unique booklet number printed on the cover.
        start_no: First receipt number in the booklet.
        end_no: Last receipt number in the booklet.
        pages_left: Sorted list of unused receipt numbers.
    """

    booklet_no = models.CharField(
        max_length=30,
        unique=True,
        verbose_name=_('Booklet Number')
    )
    start_no = models.PositiveIntegerField(verbose_name=_('First Receipt No'))
    end_no = models.PositiveIntegerField(verbose_name=_('Last Receipt No'))
    pages_left = models.JSONField(
        default=list,
        blank=True,
        verbose_name=_('Pages Left'),
        help_text=_('Receipt numbers that have not been used yet.')
    )

    class Meta:
        verbose_name = _('Booklet')
        verbose_name_plural = _('Booklets')
        ordering = ['booklet_no']

    def __str__(self) -> str:
        return f"Booklet {self.booklet_no} ({self.start_no}-{self.end_no})"

    def clean(self) -> None:
        if self.end_no is not None and self.start_no is not None and self.end_no <= self.start_no:
            raise ValidationError(_('End number must be greater than start number.'))

    def save(self, *args, **kwargs):
        if self._state.adding and not self.pages_left:
            self.clean()
            self.pages_left = list(range(self.start_no, self.end_no + 1))
        super().save(*args, **kwargs)

    def take_page(self, receipt_no: Optional[int] = None) -> int:
        """
        Consume a receipt page.

        Args:
            receipt_no: Specific receipt number to use. If None, the lowest
                unused page is taken.

        Returns:
            The receipt number consumed.

        Raises:
            ValidationError: If the booklet is inactive, exhausted, or the
                requested page is not available.
        """
        if not self.is_active or not self.pages_left:
            raise ValidationError(_('Booklet %(no)s has no pages left.') % {'no': self.booklet_no})

        if receipt_no is None:
            receipt_no = min(self.pages_left)
        elif receipt_no not in self.pages_left:
            raise ValidationError(
                _('Receipt number %(receipt)s is not available in booklet %(no)s.') % {
                    'receipt': receipt_no, 'no': self.booklet_no
                }
            )

        self.pages_left = [page for page in self.pages_left if page != receipt_no]
        self.is_active = bool(self.pages_left)
        self.save(update_fields=['pages_left', 'is_active', 'updated_at'])
        return receipt_no

    def return_page(self, receipt_no: int) -> None:
        """Put a receipt number back into the booklet."""
        if receipt_no in self.pages_left:
            return
        self.pages_left = sorted(self.pages_left + [receipt_no])
        self.is_active = True
        self.save(update_fields=['pages_left', 'is_active', 'updated_at'])


class Transaction(AuditLogMixin):
    """
    Double-entry financial transaction.

    A transaction moves money into (credit) or out of (debit) an account.
    Its items decompose the amount across ledger heads. Cheque
    transactions stay pending and do not touch any balance until the
    cheque clears.

    Attributes:
        account: Owning account.
        ledger_head: Primary ledger head.
        donor: Optional donor for credit transactions.
        booklet: Receipt booklet (credit transactions only).
        receipt_no: Receipt number drawn from the booklet.
        amount: Transaction amount, always positive.
        tx_type: credit or debit.
        cash_type: Payment instrument.
        cash_amount: Portion settled in cash.
        bank_amount: Portion settled through the bank.
        tx_date: Accounting date; determines the period.
        status: pending, completed or cancelled.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name='transactions',
        verbose_name=_('Account')
    )
    ledger_head = models.ForeignKey(
        LedgerHead,
        on_delete=models.PROTECT,
        related_name='transactions',
        verbose_name=_('Primary Ledger Head')
    )
    donor = models.ForeignKey(
        Donor,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='transactions',
        verbose_name=_('Donor')
    )
    booklet = models.ForeignKey(
        Booklet,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='transactions',
        verbose_name=_('Booklet')
    )
    receipt_no = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Receipt Number')
    )
    amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(CENT)],
        verbose_name=_('Amount')
    )
    tx_type = models.CharField(
        max_length=10,
        choices=TransactionType.choices,
        verbose_name=_('Transaction Type')
    )
    cash_type = models.CharField(
        max_length=10,
        choices=CashType.choices,
        default=CashType.CASH,
        verbose_name=_('Payment Mode')
    )
    cash_amount = money_field(_('Cash Amount'))
    bank_amount = money_field(_('Bank Amount'))
    tx_date = models.DateField(verbose_name=_('Transaction Date'))
    status = models.CharField(
        max_length=10,
        choices=TransactionStatus.choices,
        default=TransactionStatus.COMPLETED,
        verbose_name=_('Status')
    )
    description = models.TextField(blank=True, verbose_name=_('Description'))

    class Meta:
        verbose_name = _('Transaction')
        verbose_name_plural = _('Transactions')
        ordering = ['-tx_date', '-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['booklet', 'receipt_no'],
                name='unique_receipt_per_booklet'
            )
        ]
        indexes = [
            models.Index(fields=['account', 'tx_date'], name='tx_account_date_idx'),
            models.Index(fields=['ledger_head', 'tx_date'], name='tx_head_date_idx'),
            models.Index(fields=['status'], name='tx_status_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.get_tx_type_display()} {self.amount} on {self.tx_date}"

    def clean(self) -> None:
        if self.tx_type != TransactionType.CREDIT and (self.booklet_id or self.receipt_no):
            raise ValidationError(_('Booklet and receipt number are only allowed on credit transactions.'))
        if self.amount is not None and self.amount <= ZERO:
            raise ValidationError(_('Amount must be greater than zero.'))

    @property
    def sign(self) -> int:
        """+1 for credits, -1 for debits."""
        return 1 if self.tx_type == TransactionType.CREDIT else -1

    @property
    def is_cheque(self) -> bool:
        return self.cash_type == CashType.CHEQUE

    def split_item(self, amount: Decimal):
        """
        Split an item amount into its cash and bank portions.

        The cash portion is prorated by cash_amount / amount; the bank
        portion takes the remainder so the two always add up exactly.

        Returns:
            Tuple of (cash_portion, bank_portion).
        """
        if self.cash_type == CashType.CASH:
            return amount, ZERO
        if self.cash_type in BANK_CASH_TYPES:
            return ZERO, amount
        cash_part = (amount * self.cash_amount / self.amount).quantize(CENT)
        return cash_part, amount - cash_part


class TransactionItem(models.Model):
    """
    Double-entry line of a transaction against one ledger head.

    side '+' increases the head's balance, '-' decreases it.
    """

    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Transaction')
    )
    ledger_head = models.ForeignKey(
        LedgerHead,
        on_delete=models.PROTECT,
        related_name='transaction_items',
        verbose_name=_('Ledger Head')
    )
    amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(CENT)],
        verbose_name=_('Amount')
    )
    side = models.CharField(
        max_length=1,
        choices=ItemSide.choices,
        verbose_name=_('Side')
    )

    class Meta:
        verbose_name = _('Transaction Item')
        verbose_name_plural = _('Transaction Items')
        ordering = ['transaction', 'id']
        indexes = [
            models.Index(fields=['ledger_head', 'side'], name='txitem_head_side_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.side}{self.amount} {self.ledger_head.name}"

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.side == ItemSide.PLUS else -self.amount


class Cheque(TimeStampedMixin):
    """
    Cheque attached 1:1 to a transaction with cash_type = cheque.

    A cheque is created pending together with its transaction and ends
    in exactly one terminal state: cleared (balance effect applied) or
    cancelled (no effect ever applied).
    """

    transaction = models.OneToOneField(
        Transaction,
        on_delete=models.CASCADE,
        related_name='cheque',
        verbose_name=_('Transaction')
    )
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name='cheques',
        verbose_name=_('Account')
    )
    ledger_head = models.ForeignKey(
        LedgerHead,
        on_delete=models.PROTECT,
        related_name='cheques',
        verbose_name=_('Ledger Head')
    )
    cheque_number = models.CharField(
        max_length=30,
        verbose_name=_('Cheque Number')
    )
    bank_name = models.CharField(
        max_length=100,
        verbose_name=_('Bank Name')
    )
    issue_date = models.DateField(verbose_name=_('Issue Date'))
    due_date = models.DateField(verbose_name=_('Due Date'))
    status = models.CharField(
        max_length=10,
        choices=ChequeStatus.choices,
        default=ChequeStatus.PENDING,
        verbose_name=_('Status')
    )
    clearing_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_('Clearing Date'),
        help_text=_('Set only when the cheque has cleared.')
    )
    description = models.TextField(blank=True, verbose_name=_('Description'))

    class Meta:
        verbose_name = _('Cheque')
        verbose_name_plural = _('Cheques')
        ordering = ['-issue_date', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['account', 'cheque_number'],
                name='unique_cheque_number_per_account'
            )
        ]
        indexes = [
            models.Index(fields=['account', 'status'], name='cheque_account_status_idx'),
            models.Index(fields=['due_date'], name='cheque_due_date_idx'),
        ]

    def __str__(self) -> str:
        return f"Cheque {self.cheque_number} - {self.get_status_display()}"

    def clean(self) -> None:
        if (self.status == ChequeStatus.CLEARED) != (self.clearing_date is not None):
            raise ValidationError(_('Clearing date is set if and only if the cheque is cleared.'))
        if self.issue_date and self.due_date and self.due_date < self.issue_date:
            raise ValidationError(_('Due date cannot be before the issue date.'))

    def _ensure_pending(self, verb: str) -> None:
        if self.status != ChequeStatus.PENDING:
            raise InvalidChequeStateException(
                f"Cannot {verb} cheque that is already {self.status}",
                details={'cheque_id': self.pk, 'status': self.status}
            )

    def mark_cleared(self, clearing_date) -> None:
        """Move a pending cheque to cleared."""
        self._ensure_pending('clear')
        self.status = ChequeStatus.CLEARED
        self.clearing_date = clearing_date
        self.save(update_fields=['status', 'clearing_date', 'updated_at'])

    def mark_cancelled(self, reason: str = '') -> None:
        """Move a pending cheque to cancelled, recording the reason."""
        self._ensure_pending('cancel')
        self.status = ChequeStatus.CANCELLED
        if reason:
            self.description = f"{self.description} | Cancelled: {reason}" if self.description \
                else f"Cancelled: {reason}"
        self.save(update_fields=['status', 'description', 'updated_at'])
