# accounting/api/views/__init__.py

"""
accounting.api.views package

Expose public API views cleanly without making routing/imports fragile.

Important:
- ViewSets live in accounting.api.view (singular), which imports from this
  package; import them from there, never from here.
- Do NOT import accounting.api.urls from here to avoid circular imports.
"""

# Read-only reports
from accounting.api.views.arrears import ArrearsView
from accounting.api.views.balance_sheet import BalanceSheetView
from accounting.api.views.cash_flow import CashFlowView
from accounting.api.views.income_statement import IncomeStatementView
from accounting.api.views.trial_balance import TrialBalanceView

# Posting actions / master data
from accounting.api.views.accounts import AccountsView
from accounting.api.views.accruals import GenerateAccrualsView
from accounting.api.views.receipts import ReceiptAllocationView

__all__ = [
    "ArrearsView",
    "BalanceSheetView",
    "CashFlowView",
    "IncomeStatementView",
    "TrialBalanceView",
    "AccountsView",
    "GenerateAccrualsView",
    "ReceiptAllocationView",
]
