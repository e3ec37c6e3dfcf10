"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Accounting period and monthly ledger snapshot models.
-------------------------------------------------------------------------
"""
import calendar
from datetime import date
from decimal import Decimal

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from apps.finance.models import Account, LedgerHead, money_field


def month_index(month: int, year: int) -> int:
    """Ordinal of a (month, year) pair; consecutive months differ by one."""
    return year * 12 + (month - 1)


def month_from_index(index: int):
    """Inverse of month_index, returns (month, year)."""
    year, offset = divmod(index, 12)
    return offset + 1, year


def last_day_of_month(month: int, year: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


class AccountPeriod(models.Model):
    """
    Accounting month of an account.

    One row per (account, month, year) that has ever been opened or
    snapshotted. The open flag lives here, once per account-period, and a
    partial unique constraint allows at most one open row per account.

    Attributes:
        account: Owning account.
        month: Month number (1-12).
        year: Calendar year.
        is_open: Whether the month currently accepts postings.
        opened_at: When the period was last opened.
        closed_at: When the period was last closed.
    """

    account = models.ForeignKey(
        Account,
        on_delete=models.CASCADE,
        related_name='periods',
        verbose_name=_('Account')
    )
    month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)],
        verbose_name=_('Month'),
        help_text=_('Month number (1-12)')
    )
    year = models.PositiveSmallIntegerField(verbose_name=_('Year'))
    is_open = models.BooleanField(
        default=False,
        verbose_name=_('Is Open'),
        help_text=_('Only one period per account can be open for posting.')
    )
    opened_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Opened At'))
    closed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Closed At'))

    class Meta:
        verbose_name = _('Account Period')
        verbose_name_plural = _('Account Periods')
        ordering = ['account', 'year', 'month']
        constraints = [
            models.UniqueConstraint(
                fields=['account', 'month', 'year'],
                name='unique_period_per_account'
            ),
            models.UniqueConstraint(
                fields=['account'],
                condition=Q(is_open=True),
                name='one_open_period_per_account'
            ),
        ]

    def __str__(self) -> str:
        state = 'open' if self.is_open else 'closed'
        return f"{self.account.name} {self.month:02d}/{self.year} ({state})"

    @property
    def index(self) -> int:
        return month_index(self.month, self.year)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return last_day_of_month(self.month, self.year)

    def contains(self, value: date) -> bool:
        """Whether a date falls inside this period."""
        return value.year == self.year and value.month == self.month


class MonthlyLedgerBalance(models.Model):
    """
    Monthly snapshot of one ledger head.

    closing_balance = opening_balance + receipts - payments, and
    cash_in_hand / cash_in_bank split the month's net movement between
    cash and bank. Whether the month is open is read from the period.
    """

    account = models.ForeignKey(
        Account,
        on_delete=models.CASCADE,
        related_name='monthly_balances',
        verbose_name=_('Account')
    )
    ledger_head = models.ForeignKey(
        LedgerHead,
        on_delete=models.CASCADE,
        related_name='monthly_balances',
        verbose_name=_('Ledger Head')
    )
    period = models.ForeignKey(
        AccountPeriod,
        on_delete=models.PROTECT,
        related_name='balances',
        verbose_name=_('Period')
    )
    month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)],
        verbose_name=_('Month')
    )
    year = models.PositiveSmallIntegerField(verbose_name=_('Year'))

    opening_balance = money_field(_('Opening Balance'))
    receipts = money_field(_('Receipts'))
    payments = money_field(_('Payments'))
    closing_balance = money_field(_('Closing Balance'))
    cash_in_hand = money_field(_('Cash in Hand'))
    cash_in_bank = money_field(_('Cash in Bank'))

    last_updated = models.DateTimeField(
        auto_now=True,
        verbose_name=_('Last Updated')
    )

    class Meta:
        verbose_name = _('Monthly Ledger Balance')
        verbose_name_plural = _('Monthly Ledger Balances')
        ordering = ['account', 'year', 'month', 'ledger_head']
        constraints = [
            models.UniqueConstraint(
                fields=['account', 'ledger_head', 'month', 'year'],
                name='unique_monthly_balance'
            )
        ]
        indexes = [
            models.Index(fields=['account', 'year', 'month'], name='mlb_account_period_idx'),
            models.Index(fields=['ledger_head', 'year', 'month'], name='mlb_head_period_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.ledger_head.name} {self.month:02d}/{self.year}"

    @property
    def is_open(self) -> bool:
        return self.period.is_open

    def calculate_closing_balance(self) -> Decimal:
        """Set and return closing = opening + receipts - payments."""
        self.closing_balance = self.opening_balance + self.receipts - self.payments
        return self.closing_balance

    def to_dict(self) -> dict:
        return {
            'id': self.pk,
            'account_id': self.account_id,
            'ledger_head_id': self.ledger_head_id,
            'ledger_head': self.ledger_head.name,
            'month': self.month,
            'year': self.year,
            'opening_balance': str(self.opening_balance),
            'receipts': str(self.receipts),
            'payments': str(self.payments),
            'closing_balance': str(self.closing_balance),
            'cash_in_hand': str(self.cash_in_hand),
            'cash_in_bank': str(self.cash_in_bank),
            'is_open': self.is_open,
        }
