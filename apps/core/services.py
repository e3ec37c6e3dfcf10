"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Core services for the audit trail and other shared
             business logic.
-------------------------------------------------------------------------
"""
import logging
from typing import Optional

from django.db import DatabaseError, transaction

from apps.core.models import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """
    Service class for writing and querying audit trail entries.

    Audit writes run inside the caller's atomic block so that an entry
    commits or rolls back with the operation it describes. A failure to
    write the entry itself is logged and does not fail the operation.
    """

    @staticmethod
    def log_action(
        entity_type: str,
        entity_id,
        action: str,
        details: Optional[dict] = None,
        user=None
    ) -> Optional[AuditLog]:
        """
        Append an audit entry.

        Args:
            entity_type: Model name of the affected record (e.g. 'Cheque').
            entity_id: Primary key of the affected record.
            action: One of AuditAction.
            details: JSON-serializable payload describing the change.
            user: Acting user, or None for system actions.

        Returns:
            The created AuditLog, or None if the write failed.

        Example:
            >>> from apps.core.models import AuditAction
            >>> AuditService.log_action(
            ...     'AccountPeriod', period.pk, AuditAction.PERIOD_OPENED,
            ...     details={'month': 3, 'year': 2025}, user=request.user
            ... )
        """
        if user is not None and not getattr(user, 'is_authenticated', False):
            user = None
        try:
            with transaction.atomic():
                return AuditLog.objects.create(
                    entity_type=entity_type,
                    entity_id=str(entity_id),
                    action=action,
                    details=details or {},
                    user=user
                )
        except DatabaseError:
            logger.exception(
                "Failed to write audit entry %s for %s#%s", action, entity_type, entity_id
            )
            return None

    @staticmethod
    def history_for(entity_type: str, entity_id):
        """Return audit entries for a single record, newest first."""
        return AuditLog.objects.filter(
            entity_type=entity_type,
            entity_id=str(entity_id)
        ).select_related('user')
