# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

# Canonical ViewSets live in accounting/api/view.py (singular) in this project.
# We import directly to avoid circular imports through views/__init__.py.
from accounting.api.view import LedgerEntryViewSet
from accounting.api.views.accounts import AccountsView
from accounting.api.views.accruals import GenerateAccrualsView
from accounting.api.views.arrears import ArrearsView
from accounting.api.views.balance_sheet import BalanceSheetView
from accounting.api.views.cash_flow import CashFlowView
from accounting.api.views.income_statement import IncomeStatementView
from accounting.api.views.receipts import ReceiptAllocationView
from accounting.api.views.trial_balance import TrialBalanceView

router = DefaultRouter()
router.register("ledger-entries", LedgerEntryViewSet, basename="ledger-entry")

urlpatterns = [
    # Router endpoints
    path("", include(router.urls)),
    # Reports
    path("income-statement/", IncomeStatementView.as_view(), name="income-statement"),
    path("balance-sheet/", BalanceSheetView.as_view(), name="balance-sheet"),
    path("cash-flow/", CashFlowView.as_view(), name="cash-flow"),
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("arrears/", ArrearsView.as_view(), name="arrears"),
    # Master data (read-only)
    path("accounts/", AccountsView.as_view(), name="accounts"),
    # Posting actions
    path("accruals/generate/", GenerateAccrualsView.as_view(), name="accruals-generate"),
    path("receipts/", ReceiptAllocationView.as_view(), name="receipts"),
]
