# PATH: accounting/api/views/income_statement.py

"""
INCOME STATEMENT API VIEW

GET /api/accounting/income-statement/?period=YYYY-MM&basis=accrual|cash&scope_id=...
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.views.common import (
    VIEW_PERMISSION,
    error_response,
    forbidden,
    period_param,
    scope_param,
)
from accounting.services.exceptions import AccountingServiceError
from accounting.services.income_statement_service import BASIS_ACCRUAL, generate_income_statement


class IncomeStatementView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["accounting"],
        parameters=[
            OpenApiParameter(
                name="period",
                type=str,
                required=False,
                description="Period key YYYY-MM. Defaults to the current month.",
            ),
            OpenApiParameter(
                name="basis",
                type=str,
                required=False,
                enum=["accrual", "cash"],
                description="Accounting basis (default accrual).",
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
            data = generate_income_statement(
                period_param(request),
                basis=request.query_params.get("basis") or BASIS_ACCRUAL,
                scope_id=scope_param(request),
            )
        except AccountingServiceError as exc:
            return error_response(exc)

        return Response(data, status=status.HTTP_200_OK)
