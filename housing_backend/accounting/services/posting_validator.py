# accounting/services/posting_validator.py

"""
POSTING VALIDATOR

Enforces the balanced double-entry invariant BEFORE anything is persisted.

Checks (in order):
- at least two lines                         -> EmptyLineSetError
- line shape: non-negative, exactly one side -> PostingValidationError
- every account code resolves and is active  -> UnknownAccountError
- sum(debits) == declared total_debit        -> UnbalancedEntryError
- sum(credits) == declared total_credit      -> UnbalancedEntryError
- total_debit == total_credit (within EPSILON)

Pure: reads the chart, never writes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from accounting.services import account_resolver
from accounting.services.exceptions import (
    EmptyLineSetError,
    PostingValidationError,
    UnbalancedEntryError,
    UnknownAccountError,
)
from accounting.services.money import ZERO, money
from accounting.services.periods import parse_period

# differences must stay strictly below EPSILON (exact match on cent amounts)
EPSILON = Decimal("0.01")
MIN_LINES = 2


@dataclass(frozen=True)
class ValidatedLine:
    line_no: int
    account_code: str
    account_name: str
    account_type: str
    debit: Decimal
    credit: Decimal
    description: str = ""
    recognition_period: str = ""
    settlement_period: str = ""


@dataclass(frozen=True)
class ValidatedPosting:
    lines: list[ValidatedLine] = field(default_factory=list)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO


def _line_amount(line: dict, key: str) -> Decimal:
    try:
        return money(line.get(key))
    except ValueError as exc:
        raise PostingValidationError(str(exc)) from exc


def _optional_period(value) -> str:
    value = (value or "").strip()
    if value:
        parse_period(value)
    return value


def validate_postings(
    postings,
    *,
    total_debit=None,
    total_credit=None,
) -> ValidatedPosting:
    postings = list(postings or [])
    if len(postings) < MIN_LINES:
        raise EmptyLineSetError(
            f"A ledger entry needs at least {MIN_LINES} lines (got {len(postings)})"
        )

    codes = []
    for line in postings:
        if not isinstance(line, dict):
            raise PostingValidationError("Each posting must be an object/dict")
        code = str(line.get("account_code") or "").strip()
        if not code:
            raise UnknownAccountError("Posting missing account_code")
        codes.append(code)

    accounts = account_resolver.lookup_many(codes)

    sum_debit = ZERO
    sum_credit = ZERO
    validated: list[ValidatedLine] = []

    for idx, (line, code) in enumerate(zip(postings, codes), start=1):
        account = accounts.get(code)
        if account is None:
            raise UnknownAccountError(f"Account {code} not found in chart of accounts")
        if not account.is_active:
            raise UnknownAccountError(f"Account {code} is inactive")

        debit = _line_amount(line, "debit")
        credit = _line_amount(line, "credit")

        if debit < 0 or credit < 0:
            raise PostingValidationError("Debit or credit cannot be negative")
        if debit > 0 and credit > 0:
            raise PostingValidationError(
                f"Line {idx} ({code}) cannot carry both a debit and a credit"
            )
        if debit == 0 and credit == 0:
            raise PostingValidationError(f"Line {idx} ({code}) has neither debit nor credit")

        sum_debit += debit
        sum_credit += credit

        validated.append(
            ValidatedLine(
                line_no=idx,
                account_code=account.code,
                account_name=account.name,
                account_type=account.account_type,
                debit=debit,
                credit=credit,
                description=str(line.get("description") or "")[:255],
                recognition_period=_optional_period(line.get("recognition_period")),
                settlement_period=_optional_period(line.get("settlement_period")),
            )
        )

    sum_debit = money(sum_debit)
    sum_credit = money(sum_credit)

    if total_debit is not None and abs(money(total_debit) - sum_debit) >= EPSILON:
        raise UnbalancedEntryError(
            f"Declared total_debit={money(total_debit)} but lines sum to {sum_debit}"
        )
    if total_credit is not None and abs(money(total_credit) - sum_credit) >= EPSILON:
        raise UnbalancedEntryError(
            f"Declared total_credit={money(total_credit)} but lines sum to {sum_credit}"
        )
    if abs(sum_debit - sum_credit) >= EPSILON:
        raise UnbalancedEntryError(
            f"Ledger entry not balanced: debits={sum_debit} credits={sum_credit}"
        )

    return ValidatedPosting(lines=validated, total_debit=sum_debit, total_credit=sum_credit)
