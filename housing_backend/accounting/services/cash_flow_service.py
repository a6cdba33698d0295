# accounting/services/cash_flow_service.py

"""
CASH FLOW STATEMENT SERVICE

Movement across the designated cash/bank accounts
(settings.ACCOUNTING_CASH_ACCOUNT_CODES) for entries dated inside a period.

- opening cash  = cash balance at the day before the period starts
- inflow        = debits to cash accounts in the period
- outflow       = credits to cash accounts in the period
- closing cash  = opening + inflow - outflow

All movement is reported as operating. Investing and financing sections are
always present and always zero; no activity is classified into them.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import timedelta

from django.db.models import Sum
from django.db.models.functions import Coalesce

from accounting.services import account_resolver
from accounting.services.balance_service import posted_lines
from accounting.services.money import ZERO, money, to_major_number, to_minor_int
from accounting.services.periods import period_bounds


def _flows(inflow, outflow) -> dict:
    inflow = money(inflow)
    outflow = money(outflow)
    net = money(inflow - outflow)
    return {
        "inflow": to_major_number(inflow),
        "outflow": to_major_number(outflow),
        "net": to_major_number(net),
        "inflow_minor": to_minor_int(inflow),
        "outflow_minor": to_minor_int(outflow),
        "net_minor": to_minor_int(net),
    }


def generate_cash_flow(period: str, scope_id: str | None = None) -> dict:
    start, end = period_bounds(period)
    cash_codes = account_resolver.get_cash_account_codes()
    names = {code: account.name for code, account in account_resolver.lookup_many(cash_codes).items()}

    cash_lines = posted_lines(scope_id=scope_id).filter(account_code__in=cash_codes)

    opening_rows = (
        cash_lines.filter(entry__date__lt=start)
        .values("account_code")
        .annotate(debit=Coalesce(Sum("debit"), ZERO), credit=Coalesce(Sum("credit"), ZERO))
        .order_by("account_code")
    )
    period_rows = (
        cash_lines.filter(entry__date__gte=start, entry__date__lte=end)
        .values("account_code")
        .annotate(debit=Coalesce(Sum("debit"), ZERO), credit=Coalesce(Sum("credit"), ZERO))
        .order_by("account_code")
    )

    opening_by = {r["account_code"]: money(r["debit"] - r["credit"]) for r in opening_rows}
    movement_by = {r["account_code"]: (money(r["debit"]), money(r["credit"])) for r in period_rows}

    breakdown = OrderedDict()
    opening_total = ZERO
    inflow_total = ZERO
    outflow_total = ZERO

    for code in sorted(set(opening_by) | set(movement_by)):
        opening = opening_by.get(code, ZERO)
        inflow, outflow = movement_by.get(code, (ZERO, ZERO))
        closing = money(opening + inflow - outflow)

        opening_total += opening
        inflow_total += inflow
        outflow_total += outflow

        breakdown[code] = {
            "code": code,
            "name": names.get(code, code),
            "opening": to_major_number(opening),
            "closing": to_major_number(closing),
            "opening_minor": to_minor_int(opening),
            "closing_minor": to_minor_int(closing),
            **_flows(inflow, outflow),
        }

    opening_total = money(opening_total)
    closing_total = money(opening_total + inflow_total - outflow_total)

    return {
        "period": period,
        "scope_id": scope_id or None,
        "period_start": start.isoformat(),
        "period_end": end.isoformat(),
        "opening_as_of": (start - timedelta(days=1)).isoformat(),
        "opening_cash": to_major_number(opening_total),
        "closing_cash": to_major_number(closing_total),
        "opening_cash_minor": to_minor_int(opening_total),
        "closing_cash_minor": to_minor_int(closing_total),
        "operating": _flows(inflow_total, outflow_total),
        "investing": _flows(ZERO, ZERO),
        "financing": _flows(ZERO, ZERO),
        "net_change": to_major_number(money(inflow_total - outflow_total)),
        "net_change_minor": to_minor_int(money(inflow_total - outflow_total)),
        "accounts": list(breakdown.values()),
    }
