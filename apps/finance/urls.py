"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: URL configuration for the finance module.
-------------------------------------------------------------------------
"""
from django.urls import path

from apps.finance.views_api import (
    PostTransactionAPIView,
    VoidTransactionAPIView,
    ClearChequeAPIView,
    CancelChequeAPIView,
    AvailableBankBalanceAPIView,
)

app_name = 'finance'

urlpatterns = [
    # Transactions
    path('api/transactions/', PostTransactionAPIView.as_view(), name='api_post_transaction'),
    path('api/transactions/<uuid:transaction_id>/void/', VoidTransactionAPIView.as_view(), name='api_void_transaction'),

    # Cheques
    path('api/cheques/<int:cheque_id>/clear/', ClearChequeAPIView.as_view(), name='api_clear_cheque'),
    path('api/cheques/<int:cheque_id>/cancel/', CancelChequeAPIView.as_view(), name='api_cancel_cheque'),
    path('api/ledger-heads/<int:ledger_head_id>/available-bank-balance/',
         AvailableBankBalanceAPIView.as_view(), name='api_available_bank_balance'),
]
