# PATH: accounting/api/views/balance_sheet.py

"""
BALANCE SHEET API VIEW

Read-only endpoint exposing the balance sheet snapshot.

- Permission-gated: requires accounting.view_ledgerentry
- An out-of-balance ledger still returns 200; see `balance_check`
"""

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.views.common import (
    VIEW_PERMISSION,
    date_param,
    error_response,
    forbidden,
    scope_param,
)
from accounting.services.balance_sheet_service import generate_balance_sheet
from accounting.services.exceptions import AccountingServiceError


class BalanceSheetView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["accounting"],
        parameters=[
            OpenApiParameter(
                name="as_of",
                type=OpenApiTypes.DATE,
                required=False,
                description="Optional cutoff date (YYYY-MM-DD), inclusive. Defaults to today.",
            ),
            OpenApiParameter(
                name="scope_id",
                type=str,
                required=False,
                description="Optional property / residence scope.",
            ),
        ],
        responses={200: dict},
    )
    def get(self, request):
        if not request.user.has_perm(VIEW_PERMISSION):
            return forbidden("You do not have permission to view financial reports.")

        try:
            balance_sheet = generate_balance_sheet(
                as_of=date_param(request),
                scope_id=scope_param(request),
            )
        except AccountingServiceError as exc:
            return error_response(exc)

        return Response(balance_sheet, status=status.HTTP_200_OK)
