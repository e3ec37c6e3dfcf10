"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: URL configuration for the closure module.
-------------------------------------------------------------------------
"""
from django.urls import path

from apps.closure.views_api import (
    OpenPeriodAPIView,
    ClosePeriodAPIView,
    OpenPeriodStatusAPIView,
    MonthlyBalancesAPIView,
)

app_name = 'closure'

urlpatterns = [
    path('api/accounts/<int:account_id>/periods/open/', OpenPeriodAPIView.as_view(), name='api_open_period'),
    path('api/accounts/<int:account_id>/periods/close/', ClosePeriodAPIView.as_view(), name='api_close_period'),
    path('api/accounts/<int:account_id>/periods/current/', OpenPeriodStatusAPIView.as_view(), name='api_open_period_status'),
    path('api/accounts/<int:account_id>/balances/', MonthlyBalancesAPIView.as_view(), name='api_monthly_balances'),
]
