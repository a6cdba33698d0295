# accounting/services/payment_allocation_service.py

"""
======================================================
PATH: accounting/services/payment_allocation_service.py
======================================================
RECEIPT ALLOCATION (OLDEST PERIOD FIRST)

One receipt -> one balanced entry per scope it settles:

    Dr  Cash / Bank                         amount
        Cr  Accounts Receivable - <subject> settled amount   (one line per period)
        Cr  Advance Payment Liability       remainder        (if any)

RULES:
- Settlement lines carry settlement_period = recognition_period = the period
  they settle, never the receipt date
- Overpayments go to the advance-payment liability; receipts are never rejected
  for being too large
- "admin" and "deposit" receipts only settle the once-off charge they name;
  excess deposit money is held as a deposit, excess admin money as an advance
- A settlement is filed under the scope of the charge it settles; a receipt
  spanning several scopes is split into one entry per scope
- A receipt_id can be applied only once (CASH_RECEIPT:<receipt_id>)
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry
from accounting.services import account_resolver
from accounting.services.balance_service import posted_lines
from accounting.services.exceptions import (
    AccountResolutionError,
    IdempotencyError,
    PostingValidationError,
)
from accounting.services.journal_entry_service import (
    build_reference,
    post_entry,
    reference_exists,
)
from accounting.services.money import ZERO, money, to_major_number, to_minor_int
from accounting.services.periods import period_key

logger = logging.getLogger(__name__)

RECEIPT_REFERENCE_KIND = "CASH_RECEIPT"

KIND_RENT = "rent"
KIND_ADMIN = "admin"
KIND_DEPOSIT = "deposit"

# once-off charge kind -> semantic account credited when the charge was raised
ONCE_OFF_CHARGE_ACCOUNTS = {
    KIND_ADMIN: "ADMIN_FEE_INCOME",
    KIND_DEPOSIT: "TENANT_DEPOSITS",
}

CHARGE_SOURCES = (LedgerEntry.SOURCE_RENT_RECOGNITION, LedgerEntry.SOURCE_LEASE_START)


@dataclass(frozen=True)
class Allocation:
    period: str
    amount: Decimal
    scope_id: str = ""


@dataclass
class AllocationResult:
    entry: LedgerEntry
    allocations: list[Allocation] = field(default_factory=list)
    unallocated_remainder: Decimal = ZERO
    entries: list[LedgerEntry] = field(default_factory=list)

    @property
    def allocated_total(self) -> Decimal:
        return money(sum((a.amount for a in self.allocations), ZERO))

    @property
    def received_total(self) -> Decimal:
        entries = self.entries or [self.entry]
        return money(sum((e.total_debit for e in entries), ZERO))

    def to_payload(self) -> dict:
        received = self.received_total
        return {
            "transaction_id": self.entry.transaction_id,
            "transaction_ids": [e.transaction_id for e in (self.entries or [self.entry])],
            "reference": self.entry.reference,
            "subject_id": self.entry.subject_id,
            "amount": to_major_number(received),
            "amount_minor": to_minor_int(received),
            "allocations": [
                {
                    "period": a.period,
                    "amount": to_major_number(a.amount),
                    "amount_minor": to_minor_int(a.amount),
                }
                for a in self.allocations
            ],
            "unallocated_remainder": to_major_number(self.unallocated_remainder),
            "unallocated_remainder_minor": to_minor_int(self.unallocated_remainder),
        }


def _receipt_date(received_at) -> date:
    if received_at is None:
        return timezone.localdate()
    if hasattr(received_at, "date") and callable(received_at.date):
        if timezone.is_aware(received_at):
            received_at = timezone.localtime(received_at)
        return received_at.date()
    return received_at


def _resolve_cash_account(cash_account_code: str | None) -> Account:
    if not cash_account_code:
        return account_resolver.get_cash_account()

    account = account_resolver.lookup(cash_account_code)
    if account.code not in account_resolver.get_cash_account_codes():
        raise AccountResolutionError(f"Account {account.code} is not a cash/bank account")
    return account


def _normalize_kind(payment_kind) -> str:
    return str(payment_kind or KIND_RENT).strip().lower() or KIND_RENT


def _subject_scope(subject_id) -> str:
    """Scope of the counterparty's most recent posted entry (blank when none)."""
    scope = (
        LedgerEntry.objects.filter(subject_id=str(subject_id), status=LedgerEntry.STATUS_POSTED)
        .exclude(scope_id="")
        .order_by("-date", "-id")
        .values_list("scope_id", flat=True)
        .first()
    )
    return scope or ""


def _receivable_by_period_and_scope(subject_id, as_of: date, scope_id: str | None):
    """{(period, scope_id): outstanding} for the counterparty's receivable sub-account."""
    code = account_resolver.receivable_subaccount_code(subject_id)
    lines = (
        posted_lines(scope_id=scope_id)
        .filter(account_code=code, entry__date__lte=as_of)
        .values_list(
            "recognition_period",
            "settlement_period",
            "debit",
            "credit",
            "entry__date",
            "entry__scope_id",
        )
    )

    outstanding: dict[tuple[str, str], Decimal] = {}
    for recognition_period, settlement_period, debit, credit, entry_date, entry_scope in lines:
        if settlement_period:
            key = (settlement_period, entry_scope)
            outstanding[key] = outstanding.get(key, ZERO) - (credit - debit)
        else:
            key = (recognition_period or period_key(entry_date), entry_scope)
            outstanding[key] = outstanding.get(key, ZERO) + (debit - credit)

    return {key: money(value) for key, value in outstanding.items()}


def _once_off_outstanding(subject_id, as_of: date, scope_id: str | None, kind: str):
    """
    {(period, scope_id): outstanding} of one once-off charge (admin fee or deposit):
    charged (net of reversals) minus settled by receipts of the same kind.
    """
    charge_code = account_resolver.code_for(ONCE_OFF_CHARGE_ACCOUNTS[kind])
    receivable_code = account_resolver.receivable_subaccount_code(subject_id)

    charges = (
        posted_lines(scope_id=scope_id)
        .filter(
            account_code=charge_code,
            entry__subject_id=str(subject_id),
            entry__date__lte=as_of,
        )
        .filter(
            Q(entry__source__in=CHARGE_SOURCES)
            | Q(
                entry__source=LedgerEntry.SOURCE_ADJUSTMENT,
                entry__tags__reversedSource__in=CHARGE_SOURCES,
            )
        )
        .values_list("recognition_period", "debit", "credit", "entry__date", "entry__scope_id")
    )
    settlements = (
        posted_lines(scope_id=scope_id)
        .filter(account_code=receivable_code, entry__date__lte=as_of, entry__tags__paymentKind=kind)
        .exclude(settlement_period="")
        .values_list("settlement_period", "debit", "credit", "entry__scope_id")
    )

    outstanding: dict[tuple[str, str], Decimal] = {}
    for recognition_period, debit, credit, entry_date, entry_scope in charges:
        key = (recognition_period or period_key(entry_date), entry_scope)
        outstanding[key] = outstanding.get(key, ZERO) + (credit - debit)
    for settlement_period, debit, credit, entry_scope in settlements:
        key = (settlement_period, entry_scope)
        outstanding[key] = outstanding.get(key, ZERO) - (credit - debit)

    return {key: money(value) for key, value in outstanding.items()}


def plan_allocation(outstanding_by_period, amount: Decimal) -> tuple[list[Allocation], Decimal]:
    """
    Oldest-first walk: min(remaining, outstanding) per period.

    Keys are period keys or (period, scope_id) pairs.
    """
    remaining = money(amount)
    allocations: list[Allocation] = []

    for key in sorted(outstanding_by_period):
        if remaining <= 0:
            break
        outstanding = money(outstanding_by_period[key])
        if outstanding <= 0:
            continue
        period, scope = key if isinstance(key, tuple) else (key, "")
        applied = min(remaining, outstanding)
        allocations.append(Allocation(period=period, amount=applied, scope_id=scope))
        remaining = money(remaining - applied)

    return allocations, remaining


def _outstanding_for_kind(subject_id, as_of: date, scope_id: str | None, kind: str):
    outstanding = _receivable_by_period_and_scope(subject_id, as_of, scope_id)
    if kind not in ONCE_OFF_CHARGE_ACCOUNTS:
        return outstanding

    # never settle more than the receivable still owes for that period
    charge = _once_off_outstanding(subject_id, as_of, scope_id, kind)
    return {
        key: min(amount, outstanding.get(key, ZERO))
        for key, amount in charge.items()
    }


def _group_by_scope(allocations, remainder: Decimal, overflow_scope: str):
    groups: "OrderedDict[str, list[Allocation]]" = OrderedDict()
    for allocation in allocations:
        groups.setdefault(allocation.scope_id, []).append(allocation)
    if remainder > 0 or not groups:
        groups.setdefault(overflow_scope, [])
    return groups


@transaction.atomic
def allocate_receipt(
    subject_id,
    amount,
    received_at,
    *,
    scope_id: str | None = None,
    cash_account_code: str | None = None,
    receipt_id: str | None = None,
    payment_kind: str = KIND_RENT,
    subject_name: str = "",
) -> AllocationResult:
    try:
        amount = money(amount)
    except ValueError as exc:
        raise PostingValidationError(str(exc)) from exc
    if amount <= 0:
        raise PostingValidationError("Receipt amount must be greater than zero")

    kind = _normalize_kind(payment_kind)
    received_on = _receipt_date(received_at)
    receipt_period = period_key(received_on)

    reference = None
    if receipt_id:
        reference = build_reference(RECEIPT_REFERENCE_KIND, receipt_id)
        if reference_exists(reference):
            raise IdempotencyError(f"Receipt {receipt_id} has already been applied")

    cash = _resolve_cash_account(cash_account_code)
    receivable = account_resolver.ensure_receivable_subaccount(subject_id, subject_name)
    if kind == KIND_DEPOSIT:
        overflow = account_resolver.get_deposit_liability_account()
    else:
        overflow = account_resolver.get_advance_payment_account()

    # serialize allocations for the same counterparty
    Account.objects.select_for_update().filter(pk=receivable.pk).first()

    allocations, remainder = plan_allocation(
        _outstanding_for_kind(subject_id, received_on, scope_id, kind),
        amount,
    )

    overflow_scope = scope_id or _subject_scope(subject_id)
    groups = _group_by_scope(allocations, remainder, overflow_scope)

    entries = []
    for index, (group_scope, group_allocations) in enumerate(groups.items()):
        group_remainder = remainder if group_scope == overflow_scope else ZERO
        group_total = money(sum((a.amount for a in group_allocations), ZERO) + group_remainder)

        postings = [
            {
                "account_code": cash.code,
                "debit": group_total,
                "credit": ZERO,
                "description": f"Receipt {receipt_id or ''}".strip(),
                "recognition_period": receipt_period,
            }
        ]
        for allocation in group_allocations:
            postings.append(
                {
                    "account_code": receivable.code,
                    "debit": ZERO,
                    "credit": allocation.amount,
                    "description": f"Settles {allocation.period}",
                    "recognition_period": allocation.period,
                    "settlement_period": allocation.period,
                }
            )
        if group_remainder > 0:
            postings.append(
                {
                    "account_code": overflow.code,
                    "debit": ZERO,
                    "credit": group_remainder,
                    "description": (
                        "Deposit received in excess" if kind == KIND_DEPOSIT
                        else "Unallocated advance payment"
                    ),
                    "recognition_period": receipt_period,
                }
            )

        entry_reference = reference
        if index > 0:
            entry_reference = (
                build_reference(RECEIPT_REFERENCE_KIND, receipt_id, group_scope or "-")
                if receipt_id
                else None
            )

        tags = {
            "counterpartyId": str(subject_id),
            "paymentKind": kind,
            "receiptId": str(receipt_id or ""),
            "allocations": [
                {"period": a.period, "amount": str(a.amount)} for a in group_allocations
            ],
            "unallocated": str(group_remainder),
        }
        if len(groups) > 1:
            tags["receiptPart"] = f"{index + 1}/{len(groups)}"

        entries.append(
            post_entry(
                description=f"Receipt from {subject_name or subject_id}",
                postings=postings,
                source=LedgerEntry.SOURCE_CASH_RECEIPT,
                date=received_on,
                scope_id=group_scope,
                subject_id=str(subject_id),
                source_type="Receipt",
                source_id=str(receipt_id or ""),
                reference=entry_reference,
                tags=tags,
            )
        )
    if remainder > 0:
        logger.info(
            "Receipt %s for %s left %s unallocated (%s)",
            entries[0].transaction_id,
            subject_id,
            remainder,
            overflow.name,
        )
    if len(entries) > 1:
        logger.info(
            "Receipt %s for %s split across scopes %s",
            receipt_id or entries[0].transaction_id,
            subject_id,
            ", ".join(group or "-" for group in groups),
        )

    return AllocationResult(
        entry=entries[0],
        allocations=allocations,
        unallocated_remainder=remainder,
        entries=entries,
    )
