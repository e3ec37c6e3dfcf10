"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Admin configuration for period and snapshot models.
-------------------------------------------------------------------------
"""
from django.contrib import admin

from .models import AccountPeriod, MonthlyLedgerBalance


@admin.register(AccountPeriod)
class AccountPeriodAdmin(admin.ModelAdmin):
    """Periods are opened and closed through PeriodClosureService."""

    list_display = ('account', 'month', 'year', 'is_open', 'opened_at', 'closed_at')
    list_filter = ('is_open', 'account', 'year')
    readonly_fields = ('account', 'month', 'year', 'is_open', 'opened_at', 'closed_at')

    def has_add_permission(self, request):
        return False


@admin.register(MonthlyLedgerBalance)
class MonthlyLedgerBalanceAdmin(admin.ModelAdmin):
    list_display = (
        'account', 'ledger_head', 'month', 'year', 'opening_balance',
        'receipts', 'payments', 'closing_balance', 'cash_in_hand', 'cash_in_bank'
    )
    list_filter = ('account', 'year', 'month')
    search_fields = ('ledger_head__name',)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
