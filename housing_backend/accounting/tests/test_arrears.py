# accounting/tests/test_arrears.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase

from accounting.services.accrual_service import generate_accruals_for_period, reverse_accrual
from accounting.services.arrears_service import (
    arrears_for_scope,
    arrears_for_subject,
    portfolio_arrears,
)
from accounting.services.exceptions import NotFoundError
from accounting.services.payment_allocation_service import allocate_receipt
from accounting.tests.helpers import ST_KILDA, fee_schedule, obligation, seed_chart

AS_OF = date(2025, 3, 31)


class ArrearsTests(TestCase):
    def setUp(self):
        seed_chart()
        schedule = fee_schedule()

        lease = obligation("S1", "200.00", date(2025, 1, 1), scope_id=ST_KILDA)
        for period in ("2025-01", "2025-02", "2025-03"):
            generate_accruals_for_period(period, [lease], fee_schedule=schedule)

        # S2 paid, then the accrual was cancelled: a credit balance
        result = generate_accruals_for_period(
            "2025-01", [obligation("S2", "100.00", scope_id="north")], fee_schedule=schedule
        )
        allocate_receipt("S2", "100.00", date(2025, 1, 10))
        reverse_accrual(result.created[0], reason="Cancelled", reversal_date=date(2025, 1, 20))

    def test_subject_in_arrears(self):
        snap = arrears_for_subject("S1", AS_OF)

        self.assertEqual(snap.total_recognized, Decimal("620.00"))
        self.assertEqual(snap.total_settled, Decimal("0.00"))
        self.assertEqual(snap.outstanding, Decimal("620.00"))
        self.assertTrue(snap.in_arrears)
        self.assertFalse(snap.credit_balance)
        self.assertEqual(snap.periods_outstanding, ["2025-01", "2025-02", "2025-03"])

    def test_partial_payment_clears_oldest_period(self):
        allocate_receipt("S1", "300.00", date(2025, 3, 5))

        snap = arrears_for_subject("S1", AS_OF)
        self.assertEqual(snap.outstanding, Decimal("320.00"))
        self.assertEqual(snap.periods_outstanding, ["2025-02", "2025-03"])

    def test_as_of_limits_history(self):
        snap = arrears_for_subject("S1", date(2025, 1, 31))
        self.assertEqual(snap.outstanding, Decimal("220.00"))

    def test_credit_balance_is_not_clamped(self):
        snap = arrears_for_subject("S2", AS_OF)

        self.assertEqual(snap.outstanding, Decimal("-100.00"))
        self.assertTrue(snap.credit_balance)
        self.assertFalse(snap.in_arrears)

        payload = snap.to_payload()
        self.assertEqual(payload["outstanding"], -100.0)
        self.assertEqual(payload["outstanding_minor"], -10000)

    def test_scope_totals(self):
        snap = arrears_for_scope(ST_KILDA, AS_OF)

        self.assertEqual(snap.subject_count, 1)
        self.assertEqual(snap.subjects_in_arrears, 1)
        self.assertEqual(snap.outstanding, Decimal("620.00"))

    def test_portfolio(self):
        data = portfolio_arrears(AS_OF)

        self.assertEqual(data["subject_count"], 2)
        self.assertEqual(data["subjects_in_arrears"], 1)
        self.assertEqual(data["total_outstanding"], 520.0)
        self.assertEqual(data["total_outstanding_minor"], 52000)
        self.assertEqual([s["scope_id"] for s in data["scopes"]], ["north", ST_KILDA])
        self.assertEqual(data["scopes_in_arrears"], 1)

    def test_unknown_subject_or_scope(self):
        with self.assertRaises(NotFoundError):
            arrears_for_subject("ghost", AS_OF)
        with self.assertRaises(NotFoundError):
            arrears_for_subject("  ", AS_OF)
        with self.assertRaises(NotFoundError):
            arrears_for_scope("nowhere", AS_OF)
