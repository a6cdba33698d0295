# accounting/api/views/common.py

"""
Shared query-param parsing + error mapping for accounting report views.

Error mapping:
- NotFoundError              -> 404
- other AccountingServiceError -> 400
"""

from __future__ import annotations

from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.response import Response

from accounting.services.exceptions import AccountingServiceError, NotFoundError
from accounting.services.periods import parse_period, period_key

VIEW_PERMISSION = "accounting.view_ledgerentry"
POST_PERMISSION = "accounting.add_ledgerentry"


class QueryParamError(AccountingServiceError):
    """Raised when a query parameter cannot be parsed."""


def forbidden(message: str) -> Response:
    return Response({"detail": message}, status=status.HTTP_403_FORBIDDEN)


def error_response(exc: AccountingServiceError) -> Response:
    code = status.HTTP_404_NOT_FOUND if isinstance(exc, NotFoundError) else status.HTTP_400_BAD_REQUEST
    return Response({"detail": str(exc)}, status=code)


def date_param(request, name: str = "as_of"):
    raw = (request.query_params.get(name) or "").strip()
    if not raw:
        return timezone.localdate()
    d = parse_date(raw)
    if d is None:
        raise QueryParamError(f"Invalid {name} (expected YYYY-MM-DD)")
    return d


def period_param(request, name: str = "period") -> str:
    raw = (request.query_params.get(name) or "").strip()
    if not raw:
        return period_key(timezone.localdate())
    parse_period(raw)
    return raw


def scope_param(request, name: str = "scope_id") -> str | None:
    return (request.query_params.get(name) or "").strip() or None
