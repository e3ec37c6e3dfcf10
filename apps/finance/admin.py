"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Admin configuration for Finance models.
-------------------------------------------------------------------------
"""
from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import (
    Account, LedgerHead, Donor, Booklet, Transaction, TransactionItem, Cheque
)


class LedgerHeadInline(admin.TabularInline):
    """Ledger heads shown on the account page."""

    model = LedgerHead
    extra = 0
    fields = ('name', 'head_type', 'current_balance', 'cash_balance', 'bank_balance', 'is_active')
    readonly_fields = ('current_balance', 'cash_balance', 'bank_balance')


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    """Admin configuration for Account model."""

    list_display = ('name', 'closing_balance', 'cash_balance', 'bank_balance', 'last_closed_date', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name',)
    readonly_fields = ('closing_balance', 'cash_balance', 'bank_balance', 'last_closed_date',
                       'created_at', 'updated_at')
    inlines = [LedgerHeadInline]


@admin.register(LedgerHead)
class LedgerHeadAdmin(admin.ModelAdmin):
    """Admin configuration for LedgerHead model."""

    list_display = ('name', 'account', 'head_type', 'current_balance', 'cash_balance', 'bank_balance')
    list_filter = ('account', 'head_type', 'is_active')
    search_fields = ('name',)
    readonly_fields = ('current_balance', 'cash_balance', 'bank_balance')


@admin.register(Donor)
class DonorAdmin(admin.ModelAdmin):
    list_display = ('name', 'phone', 'email')
    search_fields = ('name', 'phone', 'email')


@admin.register(Booklet)
class BookletAdmin(admin.ModelAdmin):
    """Admin configuration for Booklet model."""

    list_display = ('booklet_no', 'start_no', 'end_no', 'pages_remaining', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('booklet_no',)
    readonly_fields = ('pages_left',)

    @admin.display(description=_('Pages Left'))
    def pages_remaining(self, obj):
        return len(obj.pages_left)


class TransactionItemInline(admin.TabularInline):
    model = TransactionItem
    extra = 0
    can_delete = False
    readonly_fields = ('ledger_head', 'amount', 'side')


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """
    Transactions are posted through TransactionService only; the admin
    is read-only so running balances cannot be bypassed.
    """

    list_display = ('tx_date', 'account', 'ledger_head', 'tx_type', 'cash_type', 'amount', 'status')
    list_filter = ('account', 'tx_type', 'cash_type', 'status')
    search_fields = ('id', 'description')
    date_hierarchy = 'tx_date'
    inlines = [TransactionItemInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Cheque)
class ChequeAdmin(admin.ModelAdmin):
    """Admin configuration for Cheque model (read-only, use ChequeService)."""

    list_display = ('cheque_number', 'bank_name', 'account', 'issue_date', 'due_date', 'status', 'clearing_date')
    list_filter = ('status', 'account')
    search_fields = ('cheque_number', 'bank_name')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
