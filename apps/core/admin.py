"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Admin configuration for core models.
-------------------------------------------------------------------------
"""
from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Read-only admin for the audit trail."""

    list_display = ('timestamp', 'action', 'entity_type', 'entity_id', 'user')
    list_filter = ('action', 'entity_type')
    search_fields = ('entity_id',)
    ordering = ('-timestamp',)
    readonly_fields = ('timestamp', 'action', 'entity_type', 'entity_id', 'details', 'user')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
