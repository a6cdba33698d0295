# accounting/services/accrual_service.py

"""
======================================================
PATH: accounting/services/accrual_service.py
======================================================
RENT ACCRUAL GENERATOR

Recognizes recurring obligations (rent + one-time admin fee) per period:

    Dr  Accounts Receivable - <subject>    base + fee
        Cr  Rental Income                  base
        Cr  Administrative Fees            fee (first active period only)

RULES:
- One entry per subject per period per kind, keyed by
  RENT_ACCRUAL:<subject>:<period>:<kind> (unique in the DB)
- Partial periods are prorated by active days when the schedule says so
- The admin fee is never prorated
- A bad item is skipped with a reason; the batch never fails as a whole
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.db.models import Count, Sum
from django.utils.dateparse import parse_date
from django.utils.module_loading import import_string

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry, LedgerLine
from accounting.services import account_resolver
from accounting.services.exceptions import (
    AccountingServiceError,
    IdempotencyError,
    ReversalError,
)
from accounting.services.fee_schedule import (
    FeeSchedule,
    FeeScheduleError,
    schedule_for_period,
)
from accounting.services.journal_entry_service import (
    build_reference,
    post_entry,
    reference_exists,
    reverse_entry,
)
from accounting.services.money import ZERO, money, to_major_number, to_minor_int
from accounting.services.periods import (
    days_in_period,
    overlap_days,
    period_bounds,
    period_key,
)

logger = logging.getLogger(__name__)

ACCRUAL_REFERENCE_KIND = "RENT_ACCRUAL"
DEPOSIT_REFERENCE_KIND = "LEASE_DEPOSIT"


@dataclass(frozen=True)
class Obligation:
    """A recurring charge owed by one counterparty (e.g. a student's lease)."""

    subject_id: str
    start_date: date | None
    subject_name: str = ""
    scope_id: str = ""
    rate: Decimal | None = None
    end_date: date | None = None
    kind: str = "rent"
    one_time_fee: Decimal | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Obligation":
        """Raises ValueError on a malformed amount or date."""
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a mapping, got {type(data).__name__}")

        def _date(value):
            if value in (None, ""):
                return None
            if isinstance(value, date):
                return value
            parsed = parse_date(str(value))
            if parsed is None:
                raise ValueError(f"Invalid date value: {value!r}")
            return parsed

        def _amount(value):
            return money(value) if value not in (None, "") else None

        return cls(
            subject_id=str(data.get("subject_id") or "").strip(),
            subject_name=str(data.get("subject_name") or "").strip(),
            scope_id=str(data.get("scope_id") or "").strip(),
            rate=_amount(data.get("rate")),
            start_date=_date(data.get("start_date")),
            end_date=_date(data.get("end_date")),
            kind=str(data.get("kind") or "rent").strip() or "rent",
            one_time_fee=_amount(data.get("one_time_fee")),
        )


@dataclass(frozen=True)
class SkippedItem:
    subject_id: str
    reason: str


@dataclass
class AccrualBatchResult:
    period: str
    created: list[LedgerEntry] = field(default_factory=list)
    skipped: list[SkippedItem] = field(default_factory=list)

    @property
    def total_recognized(self) -> Decimal:
        return money(sum((e.total_debit for e in self.created), ZERO))

    def to_payload(self) -> dict:
        total = self.total_recognized
        return {
            "period": self.period,
            "created_count": len(self.created),
            "created": [
                {
                    "transaction_id": e.transaction_id,
                    "reference": e.reference,
                    "subject_id": e.subject_id,
                    "amount": to_major_number(e.total_debit),
                    "amount_minor": to_minor_int(e.total_debit),
                }
                for e in self.created
            ],
            "skipped_count": len(self.skipped),
            "skipped": [{"subject_id": s.subject_id, "reason": s.reason} for s in self.skipped],
            "total_recognized": to_major_number(total),
            "total_recognized_minor": to_minor_int(total),
        }


def coerce_obligation(item) -> Obligation:
    """Obligation or provider dict -> Obligation (ValueError when malformed)."""
    if isinstance(item, Obligation):
        return item
    return Obligation.from_dict(item)


def _raw_subject_id(item) -> str:
    if isinstance(item, Mapping):
        return str(item.get("subject_id") or "").strip()
    return ""


def accrual_reference(subject_id: str, period: str, kind: str = "rent") -> str:
    return build_reference(ACCRUAL_REFERENCE_KIND, subject_id, period, kind)


def _resolve_schedule(period: str, fee_schedule: FeeSchedule | None) -> FeeSchedule | None:
    if fee_schedule is not None:
        return fee_schedule
    try:
        return schedule_for_period(period)
    except FeeScheduleError as exc:
        logger.warning("No fee schedule for %s: %s", period, exc)
        return None


def _amounts_for(obligation: Obligation, period: str, schedule: FeeSchedule | None):
    """
    Returns (base, fee, active_days) or a skip reason string.
    """
    if not obligation.subject_id:
        return "missing subject id"
    if obligation.start_date is None:
        return "missing start date"
    if obligation.end_date is not None and obligation.end_date < obligation.start_date:
        return "end date before start date"

    active = overlap_days(period, obligation.start_date, obligation.end_date)
    if active <= 0:
        return "not active in period"

    rate = obligation.rate
    if rate is None and schedule is not None:
        rate = schedule.default_rate
    if rate is None or rate <= 0:
        return "no rate configured"

    total_days = days_in_period(period)
    prorate = schedule.prorate_partial_periods if schedule is not None else True
    if prorate and active < total_days:
        base = money(rate * Decimal(active) / Decimal(total_days))
    else:
        base = money(rate)

    first_day, last_day = period_bounds(period)
    fee = ZERO
    if first_day <= obligation.start_date <= last_day:
        if obligation.one_time_fee is not None:
            fee = money(obligation.one_time_fee)
        elif schedule is not None:
            fee = schedule.admin_fee_for(obligation.scope_id)

    return base, fee, active


def _post_accrual(obligation: Obligation, period: str, base, fee, active, schedule):
    receivable = account_resolver.ensure_receivable_subaccount(
        obligation.subject_id, obligation.subject_name
    )
    income = account_resolver.get_rental_income_account()

    label = obligation.subject_name or obligation.subject_id
    postings = [
        {
            "account_code": receivable.code,
            "debit": base + fee,
            "credit": ZERO,
            "description": f"{obligation.kind.title()} due {period}",
            "recognition_period": period,
        },
        {
            "account_code": income.code,
            "debit": ZERO,
            "credit": base,
            "description": f"{obligation.kind.title()} income {period}",
            "recognition_period": period,
        },
    ]
    if fee > 0:
        postings.append(
            {
                "account_code": account_resolver.get_admin_fee_income_account().code,
                "debit": ZERO,
                "credit": fee,
                "description": f"Admin fee {period}",
                "recognition_period": period,
            }
        )

    first_day, _ = period_bounds(period)
    return post_entry(
        description=f"{obligation.kind.title()} accrual {period} - {label}",
        postings=postings,
        source=LedgerEntry.SOURCE_RENT_RECOGNITION,
        date=max(first_day, obligation.start_date),
        scope_id=obligation.scope_id,
        subject_id=obligation.subject_id,
        source_type="Obligation",
        source_id=obligation.subject_id,
        reference=accrual_reference(obligation.subject_id, period, obligation.kind),
        tags={
            "recognitionPeriod": period,
            "counterpartyId": obligation.subject_id,
            "kind": obligation.kind,
            "activeDays": active,
            "daysInPeriod": days_in_period(period),
            "feeScheduleVersion": schedule.version if schedule is not None else "",
        },
    )


def generate_accruals_for_period(
    period: str,
    obligations,
    *,
    fee_schedule: FeeSchedule | None = None,
) -> AccrualBatchResult:
    period_bounds(period)  # validates the key
    schedule = _resolve_schedule(period, fee_schedule)
    result = AccrualBatchResult(period=period)

    for item in obligations:
        try:
            obligation = coerce_obligation(item)
        except ValueError as exc:
            subject_id = _raw_subject_id(item)
            logger.warning("Invalid obligation for %s in %s: %s", subject_id or "?", period, exc)
            result.skipped.append(SkippedItem(subject_id, f"invalid obligation: {exc}"))
            continue

        computed = _amounts_for(obligation, period, schedule)
        if isinstance(computed, str):
            result.skipped.append(SkippedItem(obligation.subject_id, computed))
            continue

        base, fee, active = computed
        reference = accrual_reference(obligation.subject_id, period, obligation.kind)
        if reference_exists(reference):
            result.skipped.append(SkippedItem(obligation.subject_id, "already accrued"))
            continue

        try:
            entry = _post_accrual(obligation, period, base, fee, active, schedule)
        except IdempotencyError:
            result.skipped.append(SkippedItem(obligation.subject_id, "already accrued"))
            continue
        except AccountingServiceError as exc:
            logger.warning("Accrual skipped for %s in %s: %s", obligation.subject_id, period, exc)
            result.skipped.append(SkippedItem(obligation.subject_id, str(exc)))
            continue

        result.created.append(entry)

    logger.info(
        "Accruals for %s: created=%s skipped=%s total=%s",
        period,
        len(result.created),
        len(result.skipped),
        result.total_recognized,
    )
    return result


def post_lease_start_deposit(obligation: Obligation, amount=None) -> LedgerEntry:
    """
    Security deposit charged at lease start:
        Dr  Accounts Receivable - <subject>
            Cr  Tenant Deposits Held

    Defaults to one period's rate. Raises IdempotencyError when already posted.
    """
    if not obligation.subject_id or obligation.start_date is None:
        raise AccountingServiceError("Deposit requires a subject and a start date")

    period = period_key(obligation.start_date)
    if amount is None:
        amount = obligation.rate
        if amount is None:
            schedule = _resolve_schedule(period, None)
            amount = schedule.default_rate if schedule is not None else None
    if amount is None:
        raise AccountingServiceError(f"No deposit amount for {obligation.subject_id}")

    amount = money(amount)
    receivable = account_resolver.ensure_receivable_subaccount(
        obligation.subject_id, obligation.subject_name
    )
    deposits = account_resolver.get_deposit_liability_account()

    return post_entry(
        description=f"Security deposit - {obligation.subject_name or obligation.subject_id}",
        postings=[
            {
                "account_code": receivable.code,
                "debit": amount,
                "credit": ZERO,
                "description": "Security deposit due",
                "recognition_period": period,
            },
            {
                "account_code": deposits.code,
                "debit": ZERO,
                "credit": amount,
                "description": "Security deposit held",
                "recognition_period": period,
            },
        ],
        source=LedgerEntry.SOURCE_LEASE_START,
        date=obligation.start_date,
        scope_id=obligation.scope_id,
        subject_id=obligation.subject_id,
        source_type="Obligation",
        source_id=obligation.subject_id,
        reference=build_reference(
            DEPOSIT_REFERENCE_KIND, obligation.subject_id, obligation.start_date.isoformat()
        ),
        tags={"recognitionPeriod": period, "counterpartyId": obligation.subject_id},
    )


def reverse_accrual(entry: LedgerEntry, *, reason: str = "Accrual reversed", reversal_date=None):
    if entry.source not in (LedgerEntry.SOURCE_RENT_RECOGNITION, LedgerEntry.SOURCE_LEASE_START):
        raise ReversalError(f"Entry {entry.transaction_id} is not an accrual")
    return reverse_entry(entry, reason=reason, reversal_date=reversal_date)


def accrual_summary(period: str, scope_id: str | None = None) -> dict:
    """Count and total recognized by accruals for a period (reversed accruals excluded)."""
    period_bounds(period)

    entries = LedgerEntry.objects.filter(
        status=LedgerEntry.STATUS_POSTED,
        source=LedgerEntry.SOURCE_RENT_RECOGNITION,
        lines__recognition_period=period,
        reversal__isnull=True,
    )
    if scope_id:
        entries = entries.filter(scope_id=scope_id)

    entry_ids = entries.order_by().values("pk").distinct()
    agg = LedgerLine.objects.filter(
        entry_id__in=entry_ids,
        account_type=Account.INCOME,
        recognition_period=period,
    ).aggregate(total=Sum("credit"))
    count = LedgerEntry.objects.filter(pk__in=entry_ids).aggregate(n=Count("pk"))["n"] or 0

    total = money(agg["total"] or ZERO)
    return {
        "period": period,
        "scope_id": scope_id or None,
        "count": count,
        "total": to_major_number(total),
        "total_minor": to_minor_int(total),
    }


def load_obligations(period: str) -> list:
    """
    Obligations from the configured provider
    (settings.ACCOUNTING_OBLIGATION_SOURCE, a callable taking the period key).

    Items come back as the provider yields them (Obligation or dict); they are
    converted one by one during generation so a malformed row is skipped alone.
    """
    dotted = (getattr(settings, "ACCOUNTING_OBLIGATION_SOURCE", "") or "").strip()
    if not dotted:
        raise AccountingServiceError(
            "ACCOUNTING_OBLIGATION_SOURCE is not configured; pass obligations explicitly"
        )

    try:
        provider = import_string(dotted)
    except ImportError as exc:
        raise AccountingServiceError(f"Cannot import obligation source {dotted!r}: {exc}") from exc

    return list(provider(period) or [])
