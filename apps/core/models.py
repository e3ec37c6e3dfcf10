"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Shared models. Holds the append-only audit trail written by
             period, cheque and transaction operations.
-------------------------------------------------------------------------
"""
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils.translation import gettext_lazy as _


class AuditAction(models.TextChoices):
    """Actions recorded in the audit trail."""

    TRANSACTION_POSTED = 'TRANSACTION_POSTED', _('Transaction Posted')
    TRANSACTION_VOIDED = 'TRANSACTION_VOIDED', _('Transaction Voided')
    CHEQUE_CLEARED = 'CHEQUE_CLEARED', _('Cheque Cleared')
    CHEQUE_CANCELLED = 'CHEQUE_CANCELLED', _('Cheque Cancelled')
    PERIOD_OPENED = 'PERIOD_OPENED', _('Period Opened')
    PERIOD_CLOSED = 'PERIOD_CLOSED', _('Period Closed')
    PERIOD_REOPENED = 'PERIOD_REOPENED', _('Period Reopened')
    PERIOD_RECALCULATED = 'PERIOD_RECALCULATED', _('Period Recalculated')
    BALANCE_RECONCILED = 'BALANCE_RECONCILED', _('Balance Reconciled')


class AuditLog(models.Model):
    """
    Audit trail entry for ledger actions.

    Entries are append-only. The entity is referenced by type and id
    rather than a foreign key so that entries survive deletion of the
    record they describe (e.g. a voided transaction).

    Attributes:
        entity_type: Model name of the affected record.
        entity_id: Primary key of the affected record, as text.
        action: Type of action performed.
        details: JSON payload describing the change.
        user: User who performed the action (None for system jobs).
        timestamp: When the action occurred.
    """

    entity_type = models.CharField(
        max_length=50,
        verbose_name=_('Entity Type')
    )
    entity_id = models.CharField(
        max_length=64,
        verbose_name=_('Entity ID')
    )
    action = models.CharField(
        max_length=30,
        choices=AuditAction.choices,
        verbose_name=_('Action')
    )
    details = models.JSONField(
        default=dict,
        blank=True,
        encoder=DjangoJSONEncoder,
        verbose_name=_('Details')
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='ledger_audit_logs',
        verbose_name=_('User')
    )
    timestamp = models.DateTimeField(
        auto_now_add=True,
        verbose_name=_('Timestamp')
    )

    class Meta:
        verbose_name = _('Audit Log')
        verbose_name_plural = _('Audit Logs')
        ordering = ['-timestamp', '-id']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='audit_entity_idx'),
            models.Index(fields=['action', 'timestamp'], name='audit_action_ts_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.get_action_display()} {self.entity_type}#{self.entity_id}"
