# PATH: accounting/services/account_resolver.py

"""
ACCOUNT RESOLVER (AUTHORITATIVE)

This module answers ONE question:
"Which account should be used for this purpose?"

It is the chart-of-accounts registry seen by the engine:
- lookup(code) for validators and report builders
- semantic accounts (cash, receivable control, rental income, ...) mapped to
  codes, overridable through settings.ACCOUNTING_ACCOUNT_CODES
- per-counterparty receivable sub-accounts ("1100-<subject_id>")

Design goals:
- deterministic
- hard-fail on missing setup (so we don't post to wrong accounts)
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from accounting.models.account import CODE_MAX_LENGTH, SUBACCOUNT_SEPARATOR, Account
from accounting.services.exceptions import AccountResolutionError, UnknownAccountError

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# SEMANTIC CODES
# ------------------------------------------------------------

DEFAULT_CODES = {
    "CASH": "1000",
    "BANK": "1001",
    "ACCOUNTS_RECEIVABLE": "1100",
    "ACCOUNTS_PAYABLE": "2000",
    "TENANT_DEPOSITS": "2020",
    "ADVANCE_PAYMENTS": "2200",
    "OWNER_CAPITAL": "3001",
    "RETAINED_EARNINGS": "3101",
    "RENTAL_INCOME": "4000",
    "ADMIN_FEE_INCOME": "4100",
    "GENERAL_EXPENSE": "5000",
}

DEFAULT_CASH_ACCOUNT_CODES = ("1000", "1001")

# longest subject id that still fits a "1100-<subject>" sub-account code
SUBJECT_ID_MAX_LENGTH = CODE_MAX_LENGTH - len(DEFAULT_CODES["ACCOUNTS_RECEIVABLE"]) - len(SUBACCOUNT_SEPARATOR)


def _codes() -> dict:
    overrides = getattr(settings, "ACCOUNTING_ACCOUNT_CODES", None) or {}
    return {**DEFAULT_CODES, **{str(k).upper(): str(v) for k, v in overrides.items()}}


def code_for(semantic: str) -> str:
    key = (semantic or "").strip().upper()
    codes = _codes()
    if key not in codes:
        raise AccountResolutionError(f"Unknown semantic account {semantic!r}")
    return codes[key]


def lookup(code: str) -> Account:
    """Chart registry lookup: code -> Account (active or not)."""
    code = (code or "").strip()
    if not code:
        raise UnknownAccountError("Account code is required")
    try:
        return Account.objects.get(code=code)
    except Account.DoesNotExist as exc:
        raise UnknownAccountError(f"Account {code} not found in chart of accounts") from exc


def lookup_many(codes) -> dict[str, Account]:
    wanted = {str(c).strip() for c in codes if c}
    return {a.code: a for a in Account.objects.filter(code__in=wanted)}


def get_account(semantic: str) -> Account:
    code = code_for(semantic)
    try:
        return Account.objects.get(code=code, is_active=True)
    except Account.DoesNotExist as exc:
        raise AccountResolutionError(
            f"{semantic} account (code={code}) is missing or inactive. "
            "Run `manage.py seed_housing_chart`."
        ) from exc


def get_cash_account() -> Account:
    return get_account("CASH")


def get_receivable_control_account() -> Account:
    return get_account("ACCOUNTS_RECEIVABLE")


def get_rental_income_account() -> Account:
    return get_account("RENTAL_INCOME")


def get_admin_fee_income_account() -> Account:
    return get_account("ADMIN_FEE_INCOME")


def get_deposit_liability_account() -> Account:
    return get_account("TENANT_DEPOSITS")


def get_advance_payment_account() -> Account:
    return get_account("ADVANCE_PAYMENTS")


def get_accounts_payable_account() -> Account:
    return get_account("ACCOUNTS_PAYABLE")


def get_cash_account_codes() -> list[str]:
    codes = getattr(settings, "ACCOUNTING_CASH_ACCOUNT_CODES", None) or DEFAULT_CASH_ACCOUNT_CODES
    return [str(c) for c in codes]


# ------------------------------------------------------------
# RECEIVABLE SUB-ACCOUNTS
# ------------------------------------------------------------


def _normalize_subject_id(subject_id) -> str:
    sid = str(subject_id or "").strip()
    if not sid:
        raise AccountResolutionError("subject_id is required")
    return sid


def receivable_subaccount_code(subject_id) -> str:
    sid = _normalize_subject_id(subject_id)
    code = f"{code_for('ACCOUNTS_RECEIVABLE')}{SUBACCOUNT_SEPARATOR}{sid}"
    if len(code) > CODE_MAX_LENGTH:
        raise AccountResolutionError(
            "subject_id is too long for a receivable sub-account "
            f"({len(code)} > {CODE_MAX_LENGTH} characters)"
        )
    return code


def subject_from_receivable_code(code: str) -> str | None:
    prefix = f"{code_for('ACCOUNTS_RECEIVABLE')}{SUBACCOUNT_SEPARATOR}"
    if code and code.startswith(prefix):
        return code[len(prefix):]
    return None


def ensure_receivable_subaccount(subject_id, subject_name: str = "") -> Account:
    """
    Get or create the counterparty's receivable sub-account under the control account.
    Safe under concurrent creation (unique code).
    """
    control = get_receivable_control_account()
    code = receivable_subaccount_code(subject_id)

    existing = Account.objects.filter(code=code).first()
    if existing is not None:
        if not existing.is_active:
            raise AccountResolutionError(f"Receivable sub-account {code} is inactive")
        return existing

    label = (subject_name or "").strip() or _normalize_subject_id(subject_id)
    try:
        with transaction.atomic():
            account = Account.objects.create(
                code=code,
                name=f"{control.name} - {label}"[:150],
                account_type=control.account_type,
                parent=control,
                is_active=True,
            )
    except IntegrityError:
        return Account.objects.get(code=code)
    except ValidationError as exc:
        raise AccountResolutionError(f"Cannot create receivable sub-account {code}: {exc}") from exc

    logger.info("Created receivable sub-account %s", code)
    return account
