# PATH: accounting/services/expense_service.py

"""
EXPENSE POSTING SERVICE

Responsibilities:
- Validate expense payload
- Resolve the expense account (must be an EXPENSE account)
- Post immutable, balanced ledger entries through the posting engine

Accounting Effect:
- Recognition:  Dr Expense            / Cr Accounts Payable
- Payment:      Dr Accounts Payable   / Cr Cash / Bank
                (Dr Expense directly when the expense was never accrued)

Every entry is tagged with the expense account so cash-basis reports can
break payments down by what was paid for.
"""

from __future__ import annotations

from datetime import date as date_type

from django.db import transaction
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry
from accounting.services import account_resolver
from accounting.services.exceptions import AccountResolutionError, PostingValidationError
from accounting.services.journal_entry_service import post_entry
from accounting.services.money import ZERO, money
from accounting.services.periods import parse_period, period_key


class ExpensePostingError(PostingValidationError):
    pass


def _normalize_expense_date(expense_date) -> date_type:
    if expense_date is None:
        return timezone.localdate()
    if isinstance(expense_date, date_type):
        return expense_date
    raise ExpensePostingError("expense_date must be a date")


def _amount(value):
    try:
        amt = money(value)
    except ValueError as exc:
        raise ExpensePostingError(str(exc)) from exc
    if amt <= ZERO:
        raise ExpensePostingError("Amount must be > 0")
    return amt


def _resolve_expense_account(code: str) -> Account:
    code = (code or "").strip()
    if not code:
        code = account_resolver.code_for("GENERAL_EXPENSE")
    account = account_resolver.lookup(code)
    if not account.is_active:
        raise AccountResolutionError(f"Account {code} is inactive")
    if account.account_type != Account.EXPENSE:
        raise ExpensePostingError(f"Account {code} is not an expense account")
    return account


def _expense_tags(expense_account: Account, vendor: str, period: str) -> dict:
    return {
        "recognitionPeriod": period,
        "expenseAccountCode": expense_account.code,
        "expenseAccountName": expense_account.name,
        "vendor": (vendor or "").strip(),
    }


@transaction.atomic
def post_expense_accrual(
    *,
    amount,
    expense_date=None,
    expense_account_code: str = "",
    description: str = "",
    vendor: str = "",
    period: str | None = None,
    scope_id: str = "",
    reference: str | None = None,
    created_by: str = "system",
) -> LedgerEntry:
    amt = _amount(amount)
    expense_date = _normalize_expense_date(expense_date)
    period = period or period_key(expense_date)
    parse_period(period)

    expense_account = _resolve_expense_account(expense_account_code)
    payable = account_resolver.get_accounts_payable_account()
    narration = (description or vendor or expense_account.name).strip()

    return post_entry(
        description=f"Expense incurred: {narration}",
        postings=[
            {
                "account_code": expense_account.code,
                "debit": amt,
                "credit": ZERO,
                "description": narration,
                "recognition_period": period,
            },
            {
                "account_code": payable.code,
                "debit": ZERO,
                "credit": amt,
                "description": narration,
                "recognition_period": period,
            },
        ],
        source=LedgerEntry.SOURCE_EXPENSE_RECOGNITION,
        date=expense_date,
        scope_id=scope_id,
        source_type="Expense",
        source_id=reference or "",
        reference=reference,
        tags=_expense_tags(expense_account, vendor, period),
        created_by=created_by,
    )


@transaction.atomic
def post_expense_payment(
    *,
    amount,
    payment_date=None,
    expense_account_code: str = "",
    accrued: bool = True,
    cash_account_code: str | None = None,
    description: str = "",
    vendor: str = "",
    period: str | None = None,
    scope_id: str = "",
    reference: str | None = None,
    created_by: str = "system",
) -> LedgerEntry:
    amt = _amount(amount)
    payment_date = _normalize_expense_date(payment_date)
    period = period or period_key(payment_date)
    parse_period(period)

    expense_account = _resolve_expense_account(expense_account_code)
    if cash_account_code:
        cash = account_resolver.lookup(cash_account_code)
        if cash.code not in account_resolver.get_cash_account_codes():
            raise AccountResolutionError(f"Account {cash.code} is not a cash/bank account")
    else:
        cash = account_resolver.get_cash_account()

    debit_account = (
        account_resolver.get_accounts_payable_account() if accrued else expense_account
    )
    narration = (description or vendor or expense_account.name).strip()

    return post_entry(
        description=f"Expense paid: {narration}",
        postings=[
            {
                "account_code": debit_account.code,
                "debit": amt,
                "credit": ZERO,
                "description": narration,
                "recognition_period": period,
            },
            {
                "account_code": cash.code,
                "debit": ZERO,
                "credit": amt,
                "description": narration,
                "recognition_period": period,
            },
        ],
        source=LedgerEntry.SOURCE_EXPENSE_PAYMENT,
        date=payment_date,
        scope_id=scope_id,
        source_type="Expense",
        source_id=reference or "",
        reference=reference,
        tags={**_expense_tags(expense_account, vendor, period), "accrued": bool(accrued)},
        created_by=created_by,
    )
