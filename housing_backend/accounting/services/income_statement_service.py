# accounting/services/income_statement_service.py

"""
INCOME STATEMENT SERVICE

Read-only aggregation over immutable ledger entries, for one period key.

Bases:
- accrual: INCOME / EXPENSE lines whose recognition_period == period
           (the entry's calendar date does not matter)
- cash:    cash actually received / paid on entries dated inside the period
           - revenue  = cash receipts, broken down by payment kind; the
                        unallocated portion is reported under "advance"
           - expenses = expense payments, broken down by expense account

Contract-locked numbers (major floats + exact minor ints):
{
  "total_revenue", "total_expenses", "net_income",
  "total_revenue_minor", "total_expenses_minor", "net_income_minor",
  "revenue_breakdown", "expense_breakdown" (+ "_minor" variants)
}
"""

from __future__ import annotations

from collections import OrderedDict
from decimal import Decimal

from django.db.models import Q, Sum
from django.db.models.functions import Coalesce

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry
from accounting.services import account_resolver
from accounting.services.balance_service import posted_lines
from accounting.services.exceptions import AccountingServiceError
from accounting.services.money import ZERO, money, to_major_number, to_minor_int
from accounting.services.periods import period_bounds

BASIS_ACCRUAL = "accrual"
BASIS_CASH = "cash"
BASES = (BASIS_ACCRUAL, BASIS_CASH)

ADVANCE_KEY = "advance"


class InvalidBasisError(AccountingServiceError):
    pass


def _add(bucket: dict, key: str, amount: Decimal) -> None:
    bucket[key] = money(bucket.get(key, ZERO) + amount)


def _accrual_breakdowns(period: str, scope_id):
    rows = (
        posted_lines(scope_id=scope_id)
        .filter(
            recognition_period=period,
            account_type__in=[Account.INCOME, Account.EXPENSE],
        )
        .values("account_code", "account_name", "account_type")
        .annotate(
            debit=Coalesce(Sum("debit"), ZERO),
            credit=Coalesce(Sum("credit"), ZERO),
        )
        .order_by("account_code")
    )
    rows = list(rows)
    chart = account_resolver.lookup_many(r["account_code"] for r in rows)

    revenue: "OrderedDict[str, Decimal]" = OrderedDict()
    expenses: "OrderedDict[str, Decimal]" = OrderedDict()
    for r in rows:
        account = chart.get(r["account_code"])
        name = account.name if account else r["account_name"]
        if r["account_type"] == Account.INCOME:
            _add(revenue, name, r["credit"] - r["debit"])
        else:
            _add(expenses, name, r["debit"] - r["credit"])
    return revenue, expenses


def _cash_entries(source: str, start, end, scope_id):
    """Entries of the given source dated in [start, end], plus reversals of such entries."""
    qs = LedgerEntry.objects.filter(
        Q(source=source)
        | Q(source=LedgerEntry.SOURCE_ADJUSTMENT, tags__reversedSource=source),
        status=LedgerEntry.STATUS_POSTED,
        date__gte=start,
        date__lte=end,
    )
    if scope_id:
        qs = qs.filter(scope_id=scope_id)
    return qs.prefetch_related("lines").order_by("date", "id")


def _cash_breakdowns(period: str, scope_id):
    start, end = period_bounds(period)
    cash_codes = set(account_resolver.get_cash_account_codes())
    advance_code = account_resolver.code_for("ADVANCE_PAYMENTS")

    revenue: "OrderedDict[str, Decimal]" = OrderedDict()
    for entry in _cash_entries(LedgerEntry.SOURCE_CASH_RECEIPT, start, end, scope_id):
        received = ZERO
        unallocated = ZERO
        for line in entry.lines.all():
            if line.account_code in cash_codes:
                received += line.debit - line.credit
            elif line.account_code == advance_code:
                unallocated += line.credit - line.debit

        kind = str((entry.tags or {}).get("paymentKind") or "rent")
        allocated = money(received - unallocated)
        if allocated:
            _add(revenue, kind, allocated)
        if unallocated:
            _add(revenue, ADVANCE_KEY, unallocated)

    expenses: "OrderedDict[str, Decimal]" = OrderedDict()
    for entry in _cash_entries(LedgerEntry.SOURCE_EXPENSE_PAYMENT, start, end, scope_id):
        paid = ZERO
        for line in entry.lines.all():
            if line.account_code in cash_codes:
                paid += line.credit - line.debit
        tags = entry.tags or {}
        name = str(tags.get("expenseAccountName") or tags.get("expenseAccountCode") or "Other")
        if paid:
            _add(expenses, name, paid)

    return revenue, expenses


def _payload_map(values: dict) -> tuple[dict, dict]:
    return (
        {k: to_major_number(v) for k, v in values.items()},
        {k: to_minor_int(v) for k, v in values.items()},
    )


def generate_income_statement(period: str, basis: str = BASIS_ACCRUAL, scope_id: str | None = None) -> dict:
    basis = (basis or BASIS_ACCRUAL).strip().lower()
    if basis not in BASES:
        raise InvalidBasisError(f"Unknown basis {basis!r} (expected one of {', '.join(BASES)})")

    start, end = period_bounds(period)

    if basis == BASIS_ACCRUAL:
        revenue, expenses = _accrual_breakdowns(period, scope_id)
    else:
        revenue, expenses = _cash_breakdowns(period, scope_id)

    total_revenue = money(sum(revenue.values(), ZERO))
    total_expenses = money(sum(expenses.values(), ZERO))
    net_income = money(total_revenue - total_expenses)

    revenue_major, revenue_minor = _payload_map(revenue)
    expense_major, expense_minor = _payload_map(expenses)

    return {
        "period": period,
        "basis": basis,
        "scope_id": scope_id or None,
        "period_start": start.isoformat(),
        "period_end": end.isoformat(),
        "revenue_breakdown": revenue_major,
        "expense_breakdown": expense_major,
        "revenue_breakdown_minor": revenue_minor,
        "expense_breakdown_minor": expense_minor,
        "total_revenue": to_major_number(total_revenue),
        "total_expenses": to_major_number(total_expenses),
        "net_income": to_major_number(net_income),
        "total_revenue_minor": to_minor_int(total_revenue),
        "total_expenses_minor": to_minor_int(total_expenses),
        "net_income_minor": to_minor_int(net_income),
    }
