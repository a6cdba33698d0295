# accounting/services/balance_service.py

"""
BALANCE AGGREGATOR (AUTHORITATIVE)

Read-only ledger aggregation helpers.

RULES:
- READ-ONLY: no writes, ever
- Only POSTED entries count (entry.status == "posted")
- Accounting timeline is LedgerEntry.date (not created_at)
- ONE sign table keyed by account classification, no per-code exceptions:
    ASSET / EXPENSE                  -> debit - credit
    LIABILITY / EQUITY / INCOME      -> credit - debit
- Receivable balances are signed (a negative balance is a credit balance)
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import date
from decimal import Decimal

from django.db.models import Q, Sum
from django.db.models.functions import Coalesce

from accounting.models.account import SUBACCOUNT_SEPARATOR, Account
from accounting.models.ledger import LedgerEntry, LedgerLine
from accounting.services import account_resolver
from accounting.services.money import ZERO, money
from accounting.services.periods import period_key

NORMAL_BALANCE = {
    Account.ASSET: "DEBIT",
    Account.EXPENSE: "DEBIT",
    Account.LIABILITY: "CREDIT",
    Account.EQUITY: "CREDIT",
    Account.INCOME: "CREDIT",
}


def signed_balance(account_type: str, debit, credit) -> Decimal:
    debit = money(debit)
    credit = money(credit)
    if NORMAL_BALANCE[account_type] == "DEBIT":
        return money(debit - credit)
    return money(credit - debit)


def posted_lines(*, scope_id: str | None = None):
    qs = LedgerLine.objects.filter(entry__status=LedgerEntry.STATUS_POSTED)
    if scope_id:
        qs = qs.filter(entry__scope_id=scope_id)
    return qs


def _code_filter(account_code: str, include_subaccounts: bool) -> Q:
    if include_subaccounts:
        return Q(account_code=account_code) | Q(
            account_code__startswith=f"{account_code}{SUBACCOUNT_SEPARATOR}"
        )
    return Q(account_code=account_code)


def _totals(qs) -> tuple[Decimal, Decimal]:
    agg = qs.aggregate(
        debit=Coalesce(Sum("debit"), ZERO),
        credit=Coalesce(Sum("credit"), ZERO),
    )
    return money(agg["debit"]), money(agg["credit"])


def balance_of(
    account_code: str,
    as_of: date,
    scope_id: str | None = None,
    include_subaccounts: bool = False,
) -> Decimal:
    """Signed balance of an account from all posted lines dated on or before as_of."""
    account = account_resolver.lookup(account_code)
    qs = posted_lines(scope_id=scope_id).filter(
        _code_filter(account.code, include_subaccounts),
        entry__date__lte=as_of,
    )
    debit, credit = _totals(qs)
    return signed_balance(account.account_type, debit, credit)


def net_activity(
    account_code: str,
    start: date,
    end: date,
    scope_id: str | None = None,
    include_subaccounts: bool = False,
) -> Decimal:
    """Signed movement dated in (start, end]."""
    account = account_resolver.lookup(account_code)
    qs = posted_lines(scope_id=scope_id).filter(
        _code_filter(account.code, include_subaccounts),
        entry__date__gt=start,
        entry__date__lte=end,
    )
    debit, credit = _totals(qs)
    return signed_balance(account.account_type, debit, credit)


def balances_by_account(as_of: date, scope_id: str | None = None) -> list[dict]:
    """
    Bulk per-account balances (no N+1). Rows are keyed by the line's account
    code; names and classifications come from the chart when present.
    """
    rows = (
        posted_lines(scope_id=scope_id)
        .filter(entry__date__lte=as_of)
        .values("account_code", "account_type")
        .annotate(
            debit_total=Coalesce(Sum("debit"), ZERO),
            credit_total=Coalesce(Sum("credit"), ZERO),
        )
        .order_by("account_code")
    )

    rows = list(rows)
    chart = account_resolver.lookup_many(r["account_code"] for r in rows)

    merged: "OrderedDict[str, dict]" = OrderedDict()
    for r in rows:
        code = r["account_code"]
        account = chart.get(code)
        account_type = account.account_type if account else r["account_type"]
        row = merged.setdefault(
            code,
            {
                "code": code,
                "name": account.name if account else code,
                "account_type": account_type,
                "parent_code": account.control_code if account and account.parent_id else None,
                "debit_total": ZERO,
                "credit_total": ZERO,
            },
        )
        row["debit_total"] = money(row["debit_total"] + r["debit_total"])
        row["credit_total"] = money(row["credit_total"] + r["credit_total"])

    for row in merged.values():
        row["balance"] = signed_balance(row["account_type"], row["debit_total"], row["credit_total"])

    return list(merged.values())


# ------------------------------------------------------------
# RECEIVABLES (per counterparty, per period)
# ------------------------------------------------------------


def receivable_by_period(subject_id, as_of: date, scope_id: str | None = None):
    """
    {period: {"recognized", "settled", "outstanding"}} ordered oldest first.

    Recognition lines (no settlement period) count towards `recognized` of
    their recognition period; settlement lines count towards `settled` of
    the period they settle.
    """
    code = account_resolver.receivable_subaccount_code(subject_id)
    lines = (
        posted_lines(scope_id=scope_id)
        .filter(account_code=code, entry__date__lte=as_of)
        .values_list("recognition_period", "settlement_period", "debit", "credit", "entry__date")
    )

    periods: dict[str, dict] = {}
    for recognition_period, settlement_period, debit, credit, entry_date in lines:
        if settlement_period:
            bucket = periods.setdefault(settlement_period, {"recognized": ZERO, "settled": ZERO})
            bucket["settled"] += credit - debit
        else:
            key = recognition_period or period_key(entry_date)
            bucket = periods.setdefault(key, {"recognized": ZERO, "settled": ZERO})
            bucket["recognized"] += debit - credit

    ordered = OrderedDict()
    for key in sorted(periods):
        recognized = money(periods[key]["recognized"])
        settled = money(periods[key]["settled"])
        ordered[key] = {
            "recognized": recognized,
            "settled": settled,
            "outstanding": money(recognized - settled),
        }
    return ordered


def receivable_outstanding(subject_id, as_of: date, scope_id: str | None = None) -> Decimal:
    by_period = receivable_by_period(subject_id, as_of, scope_id)
    return money(sum((p["outstanding"] for p in by_period.values()), ZERO))


def receivable_aggregate(as_of: date, scope_id: str | None = None) -> Decimal:
    """Signed total of the receivable control account and all its sub-accounts."""
    control = account_resolver.code_for("ACCOUNTS_RECEIVABLE")
    return balance_of(control, as_of, scope_id=scope_id, include_subaccounts=True)


def subjects_with_receivables(scope_id: str | None = None) -> list[str]:
    control = account_resolver.code_for("ACCOUNTS_RECEIVABLE")
    codes = (
        posted_lines(scope_id=scope_id)
        .filter(account_code__startswith=f"{control}{SUBACCOUNT_SEPARATOR}")
        .values_list("account_code", flat=True)
        .order_by()
        .distinct()
    )
    subjects = {account_resolver.subject_from_receivable_code(c) for c in codes}
    return sorted(s for s in subjects if s)


def scopes_with_activity() -> list[str]:
    scopes = (
        LedgerEntry.objects.filter(status=LedgerEntry.STATUS_POSTED)
        .exclude(scope_id="")
        .values_list("scope_id", flat=True)
        .order_by()
        .distinct()
    )
    return sorted(set(scopes))
