"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: JSON endpoints for posting transactions and settling cheques.
-------------------------------------------------------------------------
"""
from apps.core.views import LedgerAPIView
from apps.finance.services_cheque import ChequeService
from apps.finance.services_transaction import TransactionService


class PostTransactionAPIView(LedgerAPIView):
    """
    POST a transaction payload.

    Returns JSON with the transaction id and its status ('completed', or
    'pending' for cheques).
    """

    def handle_post(self):
        payload = self.get_payload()
        result = TransactionService.post_transaction(payload, user=self.acting_user())
        return result.to_dict()


class VoidTransactionAPIView(LedgerAPIView):
    """POST to void a transaction in the open period."""

    def handle_post(self, transaction_id):
        result = TransactionService.void_transaction(transaction_id, user=self.acting_user())
        return result.to_dict()


class ClearChequeAPIView(LedgerAPIView):
    """POST {'clearing_date': 'YYYY-MM-DD'} to clear a pending cheque."""

    def handle_post(self, cheque_id):
        payload = self.get_payload()
        result = ChequeService.clear_cheque(
            cheque_id, payload.get('clearing_date'), user=self.acting_user()
        )
        return result.to_dict()


class CancelChequeAPIView(LedgerAPIView):
    """POST {'reason': '...'} to cancel a pending cheque."""

    def handle_post(self, cheque_id):
        payload = self.get_payload()
        result = ChequeService.cancel_cheque(
            cheque_id, payload.get('reason'), user=self.acting_user()
        )
        return result.to_dict()


class AvailableBankBalanceAPIView(LedgerAPIView):
    """GET the bank balance of a ledger head net of pending cheques."""

    def handle_get(self, ledger_head_id):
        return {
            'ledger_head_id': ledger_head_id,
            'available_bank_balance': str(ChequeService.available_bank_balance(ledger_head_id)),
        }
