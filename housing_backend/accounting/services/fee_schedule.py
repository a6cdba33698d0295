# accounting/services/fee_schedule.py

"""
FEE SCHEDULE

Versioned configuration table for recurring charges:
- default rate (used when an obligation carries none)
- one-time admin fee per scope (charged in the obligation's first active period)
- whether partial periods are prorated

Loaded from settings.ACCOUNTING_FEE_SCHEDULES. The version effective on the
period's first day applies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.utils.dateparse import parse_date

from accounting.services.exceptions import AccountingServiceError
from accounting.services.money import ZERO, money
from accounting.services.periods import period_bounds


class FeeScheduleError(AccountingServiceError):
    """Raised when the fee schedule configuration is invalid or missing."""


@dataclass(frozen=True)
class FeeSchedule:
    version: str
    effective_from: date
    default_rate: Decimal | None = None
    default_admin_fee: Decimal = ZERO
    admin_fees_by_scope: dict = field(default_factory=dict)
    prorate_partial_periods: bool = True

    def admin_fee_for(self, scope_id) -> Decimal:
        key = str(scope_id or "").strip().lower()
        if key and key in self.admin_fees_by_scope:
            return self.admin_fees_by_scope[key]
        return self.default_admin_fee

    @classmethod
    def from_config(cls, raw: dict) -> "FeeSchedule":
        effective_from = raw.get("effective_from")
        if isinstance(effective_from, str):
            effective_from = parse_date(effective_from)
        if not isinstance(effective_from, date):
            raise FeeScheduleError(f"Fee schedule {raw.get('version')!r} has no valid effective_from")

        default_rate = raw.get("default_rate")
        try:
            return cls(
                version=str(raw.get("version") or effective_from.isoformat()),
                effective_from=effective_from,
                default_rate=money(default_rate) if default_rate not in (None, "") else None,
                default_admin_fee=money(raw.get("default_admin_fee")),
                admin_fees_by_scope={
                    str(k).strip().lower(): money(v)
                    for k, v in (raw.get("admin_fees_by_scope") or {}).items()
                },
                prorate_partial_periods=bool(raw.get("prorate_partial_periods", True)),
            )
        except ValueError as exc:
            raise FeeScheduleError(str(exc)) from exc


def load_fee_schedules(config=None) -> list[FeeSchedule]:
    if config is None:
        config = getattr(settings, "ACCOUNTING_FEE_SCHEDULES", None) or []
    schedules = [FeeSchedule.from_config(raw) for raw in config]
    return sorted(schedules, key=lambda s: s.effective_from)


def schedule_for_period(period: str, schedules=None) -> FeeSchedule:
    if schedules is None:
        schedules = load_fee_schedules()

    first_day, _ = period_bounds(period)
    applicable = [s for s in schedules if s.effective_from <= first_day]
    if not applicable:
        raise FeeScheduleError(f"No fee schedule is effective for period {period}")
    return max(applicable, key=lambda s: s.effective_from)
