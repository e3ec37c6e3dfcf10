"""
-------------------------------------------------------------------------
System: TrustLedger (Bookkeeping & Monthly Closure System)
Client: Trusts, Societies and Small Organizations
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Base view for the JSON endpoints of the ledger apps.
-------------------------------------------------------------------------
"""
import json
import logging

from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import ObjectDoesNotExist
from django.http import JsonResponse
from django.views import View

from apps.core.exceptions import (
    InvalidChequeStateException, LedgerException, PeriodClosedException,
    PeriodNotOpenException, StorageFailureException, UniqueConstraintViolationException,
)

logger = logging.getLogger(__name__)


STATUS_BY_EXCEPTION = (
    (StorageFailureException, 503),
    (UniqueConstraintViolationException, 409),
    (InvalidChequeStateException, 409),
    (PeriodClosedException, 409),
    (PeriodNotOpenException, 409),
)


class LedgerAPIView(LoginRequiredMixin, View):
    """
    JSON endpoint base.

    Subclasses implement handle_get / handle_post and return a dict.
    Ledger exceptions are turned into {'success': False, 'error': ...}
    responses with a status code matching the error class.
    """

    raise_exception = True

    def get_payload(self) -> dict:
        if not self.request.body:
            return {}
        try:
            payload = json.loads(self.request.body)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Malformed JSON body: {exc.msg}") from exc
        if not isinstance(payload, dict):
            raise ValueError("JSON body must be an object.")
        return payload

    def acting_user(self):
        user = self.request.user
        return user if user.is_authenticated else None

    def dispatch_json(self, handler, *args, **kwargs):
        try:
            data = handler(*args, **kwargs)
        except LedgerException as exc:
            status = next((code for cls, code in STATUS_BY_EXCEPTION if isinstance(exc, cls)), 400)
            return JsonResponse({'success': False, 'error': exc.to_dict()}, status=status)
        except ObjectDoesNotExist as exc:
            return JsonResponse({'success': False, 'error': {'message': str(exc)}}, status=404)
        except ValueError as exc:
            return JsonResponse({'success': False, 'error': {'message': str(exc)}}, status=400)
        return JsonResponse({'success': True, **data})

    def get(self, request, *args, **kwargs):
        if not hasattr(self, 'handle_get'):
            return self.http_method_not_allowed(request, *args, **kwargs)
        return self.dispatch_json(self.handle_get, *args, **kwargs)

    def post(self, request, *args, **kwargs):
        if not hasattr(self, 'handle_post'):
            return self.http_method_not_allowed(request, *args, **kwargs)
        return self.dispatch_json(self.handle_post, *args, **kwargs)
