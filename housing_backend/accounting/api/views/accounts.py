# accounting/api/views/accounts.py

"""
PATH: accounting/api/views/accounts.py

CHART OF ACCOUNTS API (READ-ONLY)

GET /api/accounting/accounts/
Returns active accounts, control accounts and counterparty sub-accounts.

- Permission-gated: requires accounting.view_ledgerentry
- ?include_subaccounts=false hides the per-counterparty receivable accounts
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers.accounts import AccountListSerializer
from accounting.api.views.common import VIEW_PERMISSION, forbidden
from accounting.models.account import Account


class AccountsView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountListSerializer

    @extend_schema(
        tags=["accounting"],
        parameters=[
            OpenApiParameter(
                name="include_subaccounts",
                type=bool,
                required=False,
                description="Include counterparty sub-accounts (default true).",
            ),
        ],
        responses=AccountListSerializer(many=True),
    )
    def get(self, request, *args, **kwargs):
        if not request.user.has_perm(VIEW_PERMISSION):
            return forbidden("You do not have permission to view accounts.")

        qs = Account.objects.filter(is_active=True).select_related("parent").order_by("code")

        flag = (request.query_params.get("include_subaccounts") or "").strip().lower()
        if flag in ("0", "false", "no"):
            qs = qs.filter(parent__isnull=True)

        return Response(AccountListSerializer(qs, many=True).data, status=status.HTTP_200_OK)
