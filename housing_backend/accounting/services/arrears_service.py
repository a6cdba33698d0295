# accounting/services/arrears_service.py

"""
ARREARS CALCULATOR

Outstanding receivables per counterparty, per scope, and for the whole
portfolio. Derived on demand from the ledger (nothing is persisted).

- outstanding = recognized - settled, signed (never clamped at zero)
- in_arrears     -> outstanding > 0
- credit_balance -> outstanding < 0 (the counterparty has paid ahead)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.utils import timezone

from accounting.models.account import Account
from accounting.services import account_resolver
from accounting.services.balance_service import (
    receivable_by_period,
    scopes_with_activity,
    subjects_with_receivables,
)
from accounting.services.exceptions import NotFoundError
from accounting.services.money import ZERO, money, to_major_number, to_minor_int


@dataclass
class ArrearsSnapshot:
    as_of_date: date
    subject_id: str | None = None
    scope_id: str | None = None
    total_recognized: Decimal = ZERO
    total_settled: Decimal = ZERO
    periods_outstanding: list[str] = field(default_factory=list)
    subject_count: int = 0
    subjects_in_arrears: int = 0

    @property
    def outstanding(self) -> Decimal:
        return money(self.total_recognized - self.total_settled)

    @property
    def in_arrears(self) -> bool:
        return self.outstanding > 0

    @property
    def credit_balance(self) -> bool:
        return self.outstanding < 0

    def to_payload(self) -> dict:
        return {
            "subject_id": self.subject_id,
            "scope_id": self.scope_id,
            "as_of_date": self.as_of_date.isoformat(),
            "total_recognized": to_major_number(self.total_recognized),
            "total_settled": to_major_number(self.total_settled),
            "outstanding": to_major_number(self.outstanding),
            "total_recognized_minor": to_minor_int(self.total_recognized),
            "total_settled_minor": to_minor_int(self.total_settled),
            "outstanding_minor": to_minor_int(self.outstanding),
            "in_arrears": self.in_arrears,
            "credit_balance": self.credit_balance,
            "periods_outstanding": list(self.periods_outstanding),
            "subject_count": self.subject_count,
            "subjects_in_arrears": self.subjects_in_arrears,
        }


def _subject_snapshot(subject_id: str, as_of: date, scope_id: str | None) -> ArrearsSnapshot:
    by_period = receivable_by_period(subject_id, as_of, scope_id)
    snapshot = ArrearsSnapshot(as_of_date=as_of, subject_id=subject_id, scope_id=scope_id, subject_count=1)
    for period, row in by_period.items():
        snapshot.total_recognized += row["recognized"]
        snapshot.total_settled += row["settled"]
        if row["outstanding"] > 0:
            snapshot.periods_outstanding.append(period)
    snapshot.total_recognized = money(snapshot.total_recognized)
    snapshot.total_settled = money(snapshot.total_settled)
    snapshot.subjects_in_arrears = 1 if snapshot.in_arrears else 0
    return snapshot


def arrears_for_subject(subject_id, as_of: date | None = None, scope_id: str | None = None) -> ArrearsSnapshot:
    subject_id = str(subject_id or "").strip()
    if not subject_id:
        raise NotFoundError("subject_id is required")

    as_of = as_of or timezone.localdate()
    code = account_resolver.receivable_subaccount_code(subject_id)
    if not Account.objects.filter(code=code).exists():
        raise NotFoundError(f"No receivable account for subject {subject_id}")

    return _subject_snapshot(subject_id, as_of, scope_id)


def _aggregate(subjects, as_of: date, scope_id: str | None) -> ArrearsSnapshot:
    total = ArrearsSnapshot(as_of_date=as_of, scope_id=scope_id)
    periods = set()
    for subject_id in subjects:
        snap = _subject_snapshot(subject_id, as_of, scope_id)
        total.total_recognized += snap.total_recognized
        total.total_settled += snap.total_settled
        total.subject_count += 1
        total.subjects_in_arrears += snap.subjects_in_arrears
        periods.update(snap.periods_outstanding)
    total.total_recognized = money(total.total_recognized)
    total.total_settled = money(total.total_settled)
    total.periods_outstanding = sorted(periods)
    return total


def arrears_for_scope(scope_id: str, as_of: date | None = None) -> ArrearsSnapshot:
    scope_id = str(scope_id or "").strip()
    if not scope_id:
        raise NotFoundError("scope_id is required")

    as_of = as_of or timezone.localdate()
    subjects = subjects_with_receivables(scope_id=scope_id)
    if not subjects:
        raise NotFoundError(f"No receivable activity for scope {scope_id}")

    return _aggregate(subjects, as_of, scope_id)


def portfolio_arrears(as_of: date | None = None) -> dict:
    as_of = as_of or timezone.localdate()

    scopes = []
    for scope_id in scopes_with_activity():
        subjects = subjects_with_receivables(scope_id=scope_id)
        if subjects:
            scopes.append(_aggregate(subjects, as_of, scope_id))

    overall = _aggregate(subjects_with_receivables(), as_of, None)

    return {
        "as_of_date": as_of.isoformat(),
        "scopes": [s.to_payload() for s in scopes],
        "scopes_in_arrears": sum(1 for s in scopes if s.in_arrears),
        "subject_count": overall.subject_count,
        "subjects_in_arrears": overall.subjects_in_arrears,
        "total_outstanding": to_major_number(overall.outstanding),
        "total_outstanding_minor": to_minor_int(overall.outstanding),
        "total_recognized": to_major_number(overall.total_recognized),
        "total_settled": to_major_number(overall.total_settled),
    }
