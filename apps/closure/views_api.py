"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: JSON endpoints for opening and closing accounting periods
             and reading monthly ledger balances.
-------------------------------------------------------------------------
"""
from apps.core.views import LedgerAPIView
from apps.closure.services import PeriodClosureService


def _period_args(payload: dict):
    try:
        return int(payload.get('month')), int(payload.get('year'))
    except (TypeError, ValueError) as exc:
        raise ValueError("month and year must be integers.") from exc


class OpenPeriodAPIView(LedgerAPIView):
    """POST {'month': 3, 'year': 2025} to open a period for an account."""

    def handle_post(self, account_id):
        month, year = _period_args(self.get_payload())
        result = PeriodClosureService.open_period(account_id, month, year, user=self.acting_user())
        return result.to_dict()


class ClosePeriodAPIView(LedgerAPIView):
    """POST {'month': 3, 'year': 2025} to close the open period of an account."""

    def handle_post(self, account_id):
        month, year = _period_args(self.get_payload())
        result = PeriodClosureService.close_period(account_id, month, year, user=self.acting_user())
        return result.to_dict()


class OpenPeriodStatusAPIView(LedgerAPIView):
    """GET the open period of an account (auto-opens the current month)."""

    def handle_get(self, account_id):
        period = PeriodClosureService.get_open_period(account_id, user=self.acting_user())
        return {'account_id': account_id, 'month': period.month, 'year': period.year}


class MonthlyBalancesAPIView(LedgerAPIView):
    """GET the monthly ledger balances of an account for ?month=&year=."""

    def handle_get(self, account_id):
        month, year = _period_args(self.request.GET)
        balances = PeriodClosureService.get_monthly_balances(account_id, month, year)
        return {
            'account_id': account_id,
            'month': month,
            'year': year,
            'balances': [balance.to_dict() for balance in balances],
            'count': len(balances),
        }
