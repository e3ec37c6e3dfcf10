"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Closure app configuration.
-------------------------------------------------------------------------
"""
from django.apps import AppConfig


class ClosureConfig(AppConfig):
    """Configuration for the period closure application."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.closure'
    verbose_name = 'Monthly Closure & Snapshots'
