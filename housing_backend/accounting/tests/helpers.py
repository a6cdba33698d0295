# accounting/tests/helpers.py

from __future__ import annotations

from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.management import call_command

from accounting.models.ledger import LedgerEntry
from accounting.services.accrual_service import Obligation
from accounting.services.fee_schedule import FeeSchedule
from accounting.services.journal_entry_service import post_entry

ST_KILDA = "st-kilda"


def seed_chart():
    call_command("seed_housing_chart", stdout=StringIO())


def fee_schedule(**overrides) -> FeeSchedule:
    values = {
        "version": "test",
        "effective_from": date(2024, 1, 1),
        "default_rate": None,
        "default_admin_fee": Decimal("0.00"),
        "admin_fees_by_scope": {ST_KILDA: Decimal("20.00")},
        "prorate_partial_periods": True,
    }
    values.update(overrides)
    return FeeSchedule(**values)


def obligation(subject_id="S1", rate="200.00", start=date(2025, 1, 1), **kwargs) -> Obligation:
    return Obligation(
        subject_id=subject_id,
        subject_name=kwargs.pop("subject_name", f"Student {subject_id}"),
        scope_id=kwargs.pop("scope_id", ST_KILDA),
        rate=Decimal(rate) if rate is not None else None,
        start_date=start,
        **kwargs,
    )


def post_simple(debit_code, credit_code, amount, on, **kwargs) -> LedgerEntry:
    """Two-line adjustment entry; enough for balance arithmetic."""
    amount = Decimal(str(amount))
    return post_entry(
        description=kwargs.pop("description", f"Test {debit_code}/{credit_code}"),
        postings=[
            {"account_code": debit_code, "debit": amount, "credit": 0},
            {"account_code": credit_code, "debit": 0, "credit": amount},
        ],
        source=kwargs.pop("source", LedgerEntry.SOURCE_ADJUSTMENT),
        date=on,
        **kwargs,
    )


def sample_obligations(period):
    """Obligation provider used through ACCOUNTING_OBLIGATION_SOURCE in tests."""
    return [
        obligation("S1", "200.00", date(2025, 3, 1)),
        {
            "subject_id": "S2",
            "subject_name": "Student S2",
            "scope_id": "elsewhere",
            "rate": "150.00",
            "start_date": "2025-01-01",
        },
    ]


def obligations_with_bad_rows(period):
    """Provider whose rows are partly malformed (bad amount, impossible date)."""
    return [
        obligation("S1", "200.00", date(2025, 3, 1)),
        {"subject_id": "S8", "rate": "abc", "start_date": "2025-01-01"},
        {"subject_id": "S9", "rate": "150.00", "start_date": "2025-02-30"},
    ]
