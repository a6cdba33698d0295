# accounting/services/balance_sheet_service.py

"""
BALANCE SHEET SERVICE

Pure accounting read service.

Responsibilities:
- Compute balances per account as at a given date
- Classify balances into Assets, Liabilities, Equity
- Verify the accounting equation (Assets = Liabilities + Equity)

Sections:
- Assets: cash & bank, receivables (control + all counterparty sub-accounts,
  signed, with a credit_balance flag), other assets
- Liabilities: payables, tenant deposits, advance payments, ...
- Equity: equity accounts + cumulative earnings (income - expense to date,
  recomputed on every call)

Important:
- An imbalance is NOT raised. It is reported in `balance_check` and logged
  at WARNING so operators still get the numbers.
- Provide both major-unit numbers (floats, 2dp) and minor-unit ints (exact)
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from accounting.models.account import Account
from accounting.services import account_resolver
from accounting.services.balance_service import balances_by_account
from accounting.services.money import ZERO, money, to_major_number, to_minor_int

logger = logging.getLogger(__name__)

CUMULATIVE_EARNINGS_CODE = "E-CURR"


def _tolerance() -> Decimal:
    return money(getattr(settings, "ACCOUNTING_BALANCE_TOLERANCE", "0.01") or "0.01")


def _line(code: str, name: str, balance: Decimal, **extra) -> dict:
    return {
        "code": code,
        "name": name,
        "balance": to_major_number(balance),
        "balance_minor": to_minor_int(balance),
        **extra,
    }


def _section(lines: list[dict], total: Decimal) -> dict:
    return {
        "lines": lines,
        "total": to_major_number(total),
        "total_minor": to_minor_int(total),
    }


def generate_balance_sheet(as_of: date | None = None, scope_id: str | None = None) -> dict:
    as_of = as_of or timezone.localdate()

    cash_codes = set(account_resolver.get_cash_account_codes())
    receivable_control = account_resolver.code_for("ACCOUNTS_RECEIVABLE")

    cash_lines, other_asset_lines = [], []
    liability_lines, equity_lines = [], []
    cash_total = ZERO
    receivables = ZERO
    receivable_accounts = 0
    other_assets = ZERO
    liabilities = ZERO
    equity = ZERO
    income = ZERO
    expenses = ZERO

    for row in balances_by_account(as_of, scope_id=scope_id):
        code, bal, account_type = row["code"], row["balance"], row["account_type"]

        if account_type == Account.INCOME:
            income += bal
        elif account_type == Account.EXPENSE:
            expenses += bal
        elif account_type == Account.ASSET:
            if code == receivable_control or row["parent_code"] == receivable_control:
                receivables += bal
                receivable_accounts += 1
            elif code in cash_codes:
                cash_total += bal
                cash_lines.append(_line(code, row["name"], bal))
            elif bal:
                other_assets += bal
                other_asset_lines.append(_line(code, row["name"], bal))
        elif account_type == Account.LIABILITY:
            liabilities += bal
            if bal:
                liability_lines.append(_line(code, row["name"], bal))
        elif account_type == Account.EQUITY:
            equity += bal
            if bal:
                equity_lines.append(_line(code, row["name"], bal))

    cumulative_earnings = money(income - expenses)
    if cumulative_earnings:
        equity_lines.append(
            _line(CUMULATIVE_EARNINGS_CODE, "Cumulative Earnings", cumulative_earnings)
        )
    equity = money(equity + cumulative_earnings)

    receivables = money(receivables)
    receivable_lines = []
    if receivable_accounts:
        receivable_lines.append(
            _line(
                receivable_control,
                "Accounts Receivable",
                receivables,
                credit_balance=receivables < 0,
                accounts=receivable_accounts,
            )
        )

    total_assets = money(cash_total + receivables + other_assets)
    liabilities = money(liabilities)
    liabilities_plus_equity = money(liabilities + equity)

    tolerance = _tolerance()
    difference = money(total_assets - liabilities_plus_equity)
    # same convention as the posting validator: strictly below the tolerance
    balanced = abs(difference) < tolerance
    if balanced:
        message = "Assets equal liabilities plus equity"
    else:
        message = (
            f"Balance sheet out of balance by {difference} "
            f"(assets={total_assets}, liabilities+equity={liabilities_plus_equity})"
        )
        logger.warning("%s as of %s scope=%s", message, as_of, scope_id or "*")

    return {
        "as_of": as_of.isoformat(),
        "scope_id": scope_id or None,
        "assets": {
            "cash": _section(cash_lines, money(cash_total)),
            "receivables": {
                **_section(receivable_lines, receivables),
                "credit_balance": receivables < 0,
            },
            "other": _section(other_asset_lines, money(other_assets)),
            "total": to_major_number(total_assets),
            "total_minor": to_minor_int(total_assets),
        },
        "liabilities": _section(liability_lines, liabilities),
        "equity": _section(equity_lines, equity),
        "totals": {
            "assets": to_major_number(total_assets),
            "liabilities": to_major_number(liabilities),
            "equity": to_major_number(equity),
            "liabilities_plus_equity": to_major_number(liabilities_plus_equity),
            "assets_minor": to_minor_int(total_assets),
            "liabilities_minor": to_minor_int(liabilities),
            "equity_minor": to_minor_int(equity),
            "liabilities_plus_equity_minor": to_minor_int(liabilities_plus_equity),
        },
        "balance_check": {
            "balanced": balanced,
            "difference": to_major_number(difference),
            "difference_minor": to_minor_int(difference),
            "tolerance": to_major_number(tolerance),
            "message": message,
        },
    }
