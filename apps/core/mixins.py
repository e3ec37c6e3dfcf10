"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Reusable model mixins for timestamps, user tracking
             and active flags.
-------------------------------------------------------------------------
"""
from typing import Optional
from django.db import models
from django.conf import settings


class TimeStampedMixin(models.Model):
    """
    Abstract mixin that adds created_at and updated_at timestamps.

    Attributes:
        created_at: Timestamp when the record was created.
        updated_at: Timestamp when the record was last modified.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
        help_text="Timestamp when this record was created."
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
        help_text="Timestamp when this record was last modified."
    )

    class Meta:
        abstract = True


class AuditLogMixin(TimeStampedMixin):
    """
    Abstract mixin that records which user created a record.

    Attributes:
        created_by: ForeignKey to the user who created the record.
    """

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="%(class)s_created",
        null=True,
        blank=True,
        verbose_name="Created By",
        help_text="User who created this record."
    )

    class Meta:
        abstract = True

    def save_with_user(self, user: Optional[object] = None, *args, **kwargs) -> None:
        """
        Save the model while setting the audit user field.

        Args:
            user: The user performing the save operation.
            *args: Additional positional arguments for save().
            **kwargs: Additional keyword arguments for save().
        """
        if user is not None and self.created_by_id is None:
            self.created_by = user
        self.save(*args, **kwargs)


class StatusMixin(models.Model):
    """
    Abstract mixin for records that can be retired without deletion.
    """

    is_active = models.BooleanField(
        default=True,
        verbose_name="Is Active",
        help_text="Whether this record is active in the system."
    )

    class Meta:
        abstract = True
