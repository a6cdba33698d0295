# PATH: accounting/api/views/cash_flow.py

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
from accounting.services.cash_flow_service import generate_cash_flow
from accounting.services.exceptions import AccountingServiceError


class CashFlowView(APIView):
    """Cash movement across the designated cash/bank accounts for one period."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["accounting"],
        parameters=[
            OpenApiParameter(name="period", type=str, required=False, description="YYYY-MM"),
            OpenApiParameter(name="scope_id", type=str, required=False),
        ],
        responses={200: dict},
    )
    def get(self, request):
        if not request.user.has_perm(VIEW_PERMISSION):
            return forbidden("You do not have permission to view financial reports.")

        try:
            data = generate_cash_flow(period_param(request), scope_id=scope_param(request))
        except AccountingServiceError as exc:
            return error_response(exc)

        return Response(data, status=status.HTTP_200_OK)
