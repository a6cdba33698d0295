# PATH: accounting/api/view.py

"""
PATH: accounting/api/view.py

ACCOUNTING API VIEWSETS (READ-ONLY / AUDIT SAFE)

- Audit endpoints are strictly read-only
- Permission-gated via Django permissions (accounting.view_ledgerentry)
- Lightweight filtering WITHOUT django-filter:
    /api/accounting/ledger-entries/?subject_id=S1
    /api/accounting/ledger-entries/?scope_id=st-kilda&source=cash_receipt
    /api/accounting/ledger-entries/?account_code=1100-S1
    /api/accounting/ledger-entries/?status=draft
- Ordering via ?ordering=date / -date / created_at / -created_at
"""

from django.db.models import Prefetch
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounting.api.serializers import LedgerEntrySerializer
from accounting.api.views.common import VIEW_PERMISSION
from accounting.models.ledger import LedgerEntry, LedgerLine

ALLOWED_ORDERING = ("date", "-date", "created_at", "-created_at")


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="subject_id", type=str, required=False),
        OpenApiParameter(name="scope_id", type=str, required=False),
        OpenApiParameter(name="source", type=str, required=False),
        OpenApiParameter(
            name="status",
            type=str,
            required=False,
            description="draft / posted / void. Default: posted",
        ),
        OpenApiParameter(
            name="account_code",
            type=str,
            required=False,
            description="Entries with at least one line on this account.",
        ),
        OpenApiParameter(
            name="ordering",
            type=str,
            required=False,
            description="Order results (allowed: date, -date, created_at, -created_at). Default: -date",
        ),
    ],
)
class LedgerEntryViewSet(ReadOnlyModelViewSet):
    """
    Read-only access to ledger entries with their lines (append-only, audit-safe).
    """

    permission_classes = [IsAuthenticated]
    serializer_class = LedgerEntrySerializer
    http_method_names = ["get", "head", "options"]

    queryset = LedgerEntry.objects.select_related("reverses").prefetch_related(
        Prefetch("lines", queryset=LedgerLine.objects.order_by("line_no"))
    )

    def get_queryset(self):
        if not self.request.user.has_perm(VIEW_PERMISSION):
            raise PermissionDenied("You do not have permission to view ledger entries.")

        qs = super().get_queryset()
        qp = self.request.query_params

        qs = qs.filter(status=(qp.get("status") or LedgerEntry.STATUS_POSTED).strip())

        for param in ("subject_id", "scope_id", "source"):
            value = (qp.get(param) or "").strip()
            if value:
                qs = qs.filter(**{param: value})

        account_code = (qp.get("account_code") or "").strip()
        if account_code:
            qs = qs.filter(lines__account_code=account_code).distinct()

        ordering = (qp.get("ordering") or "-date").strip()
        if ordering not in ALLOWED_ORDERING:
            ordering = "-date"

        return qs.order_by(ordering, "-id")
