"""
PATH: accounting/api/views/trial_balance.py

TRIAL BALANCE API VIEW (READ-ONLY)

- Permission-gated: requires accounting.view_ledgerentry
- ?as_of=YYYY-MM-DD (inclusive, defaults to today), optional ?scope_id=
"""

from __future__ import annotations

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
from accounting.services.exceptions import AccountingServiceError
from accounting.services.trial_balance_service import TrialBalanceService


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(
            name="as_of",
            type=OpenApiTypes.DATE,
            location=OpenApiParameter.QUERY,
            required=False,
            description="Cutoff date (YYYY-MM-DD), inclusive. Defaults to today.",
        ),
        OpenApiParameter(
            name="scope_id",
            type=str,
            location=OpenApiParameter.QUERY,
            required=False,
            description="Optional property / residence scope.",
        ),
    ],
    responses={200: dict},
)
class TrialBalanceView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        if not request.user.has_perm(VIEW_PERMISSION):
            return forbidden("You do not have permission to view trial balance.")

        try:
            data = TrialBalanceService().generate(
                as_of=date_param(request),
                scope_id=scope_param(request),
            )
        except AccountingServiceError as exc:
            return error_response(exc)

        return Response(data, status=status.HTTP_200_OK)
