# PATH: accounting/api/views/receipts.py

"""
RECEIPTS API

POST /api/accounting/receipts/
    - Requires permission: accounting.add_ledgerentry
    - Allocates the receipt oldest period first; any excess is held as an
      advance payment
    - A repeated receipt_id is rejected (400)
"""

from django.utils import timezone
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers.receipts import ReceiptAllocationSerializer
from accounting.api.views.common import POST_PERMISSION, error_response, forbidden
from accounting.services.exceptions import AccountingServiceError
from accounting.services.payment_allocation_service import allocate_receipt


class ReceiptAllocationView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ReceiptAllocationSerializer

    @extend_schema(
        tags=["accounting"],
        request=ReceiptAllocationSerializer,
        responses={201: dict, 400: dict, 403: dict},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(POST_PERMISSION):
            return forbidden("You do not have permission to record receipts.")

        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = allocate_receipt(
                data["subject_id"],
                data["amount"],
                data.get("received_at") or timezone.localdate(),
                scope_id=data.get("scope_id") or None,
                cash_account_code=data.get("cash_account_code") or None,
                receipt_id=data.get("receipt_id") or None,
                payment_kind=data.get("payment_kind") or "rent",
                subject_name=data.get("subject_name") or "",
            )
        except AccountingServiceError as exc:
            return error_response(exc)

        return Response(result.to_payload(), status=status.HTTP_201_CREATED)
