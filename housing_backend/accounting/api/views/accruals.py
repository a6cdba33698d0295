# PATH: accounting/api/views/accruals.py

"""
ACCRUAL GENERATION API

POST /api/accounting/accruals/generate/
    {"period": "2025-02", "obligations": [...]}   (obligations optional)

- Requires permission: accounting.add_ledgerentry
- Idempotent: re-running a period reports already-accrued items as skipped
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers.accruals import GenerateAccrualsSerializer
from accounting.api.views.common import POST_PERMISSION, error_response, forbidden
from accounting.services.accrual_service import (
    Obligation,
    generate_accruals_for_period,
    load_obligations,
)
from accounting.services.exceptions import AccountingServiceError


class GenerateAccrualsView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = GenerateAccrualsSerializer

    @extend_schema(
        tags=["accounting"],
        request=GenerateAccrualsSerializer,
        responses={200: dict, 400: dict, 403: dict},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(POST_PERMISSION):
            return forbidden("You do not have permission to post accruals.")

        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        period = data["period"]

        try:
            if "obligations" in data:
                obligations = [Obligation.from_dict(o) for o in data["obligations"]]
            else:
                obligations = load_obligations(period)
            result = generate_accruals_for_period(period, obligations)
        except AccountingServiceError as exc:
            return error_response(exc)

        return Response(result.to_payload(), status=status.HTTP_200_OK)
