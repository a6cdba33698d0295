# accounting/services/trial_balance_service.py

from __future__ import annotations

from django.utils import timezone

from accounting.services.balance_service import balances_by_account
from accounting.services.money import ZERO, money, to_major_number, to_minor_int


class TrialBalanceService:
    """
    Trial Balance computation service.

    Guarantees:
    - Only POSTED entries dated on or before `as_of` count
    - Optional scope filter (property / residence)
    - Avoids N+1 queries by aggregating in bulk
    - Returns JSON-safe numeric values (no Decimals)
    """

    def __init__(self, aggregator=balances_by_account):
        self.aggregate = aggregator

    def generate(self, *, as_of=None, scope_id=None):
        cutoff = as_of or timezone.localdate()

        accounts_output = []
        total_debit = ZERO
        total_credit = ZERO

        for row in self.aggregate(cutoff, scope_id=scope_id):
            debit = money(row["debit_total"])
            credit = money(row["credit_total"])

            if debit == ZERO and credit == ZERO:
                continue

            net = money(debit - credit)
            accounts_output.append(
                {
                    "account_code": row["code"],
                    "account_name": row["name"],
                    "account_type": row["account_type"],
                    "debit": to_major_number(debit),
                    "credit": to_major_number(credit),
                    "debit_minor": to_minor_int(debit),
                    "credit_minor": to_minor_int(credit),
                    "balance_side": "DEBIT" if net >= 0 else "CREDIT",
                    "balance": to_major_number(abs(net)),
                    "balance_minor": to_minor_int(abs(net)),
                }
            )

            total_debit += debit
            total_credit += credit

        total_debit = money(total_debit)
        total_credit = money(total_credit)

        balanced = to_minor_int(total_debit) == to_minor_int(total_credit)

        return {
            "as_of": cutoff.isoformat(),
            "scope_id": scope_id or None,
            "accounts": accounts_output,
            "totals": {
                "debit": to_major_number(total_debit),
                "credit": to_major_number(total_credit),
                "debit_minor": to_minor_int(total_debit),
                "credit_minor": to_minor_int(total_credit),
                "balanced": balanced,
            },
        }


def generate_trial_balance(as_of=None, scope_id=None) -> dict:
    return TrialBalanceService().generate(as_of=as_of, scope_id=scope_id)
