# PATH: accounting/api/views/arrears.py

"""
ARREARS API VIEW

GET /api/accounting/arrears/?subject_id=...   -> one counterparty
GET /api/accounting/arrears/?scope_id=...     -> one property / residence
GET /api/accounting/arrears/                  -> whole portfolio

Unknown subject or scope -> 404.
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
from accounting.services.arrears_service import (
    arrears_for_scope,
    arrears_for_subject,
    portfolio_arrears,
)
from accounting.services.exceptions import AccountingServiceError


class ArrearsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["accounting"],
        parameters=[
            OpenApiParameter(name="subject_id", type=str, required=False),
            OpenApiParameter(name="scope_id", type=str, required=False),
            OpenApiParameter(name="as_of", type=OpenApiTypes.DATE, required=False),
        ],
        responses={200: dict, 404: dict},
    )
    def get(self, request):
        if not request.user.has_perm(VIEW_PERMISSION):
            return forbidden("You do not have permission to view arrears.")

        subject_id = (request.query_params.get("subject_id") or "").strip()
        scope_id = scope_param(request)

        try:
            as_of = date_param(request)
            if subject_id:
                data = arrears_for_subject(subject_id, as_of, scope_id=scope_id).to_payload()
            elif scope_id:
                data = arrears_for_scope(scope_id, as_of).to_payload()
            else:
                data = portfolio_arrears(as_of)
        except AccountingServiceError as exc:
            return error_response(exc)

        return Response(data, status=status.HTTP_200_OK)
