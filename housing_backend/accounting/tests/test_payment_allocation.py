# accounting/tests/test_payment_allocation.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase

from accounting.models.ledger import LedgerEntry
from accounting.services.accrual_service import generate_accruals_for_period, post_lease_start_deposit
from accounting.services.balance_sheet_service import generate_balance_sheet
from accounting.services.balance_service import (
    balance_of,
    receivable_by_period,
    receivable_outstanding,
)
from accounting.services.exceptions import (
    AccountResolutionError,
    IdempotencyError,
    PostingValidationError,
)
from accounting.services.journal_entry_service import reverse_entry
from accounting.services.payment_allocation_service import (
    Allocation,
    allocate_receipt,
    plan_allocation,
)
from accounting.tests.helpers import ST_KILDA, fee_schedule, obligation, seed_chart


class PlanAllocationTests(TestCase):
    def test_oldest_period_first(self):
        allocations, remainder = plan_allocation(
            {"2025-02": Decimal("60.00"), "2025-01": Decimal("60.00")},
            Decimal("100.00"),
        )

        self.assertEqual(
            allocations,
            [Allocation("2025-01", Decimal("60.00")), Allocation("2025-02", Decimal("40.00"))],
        )
        self.assertEqual(remainder, Decimal("0.00"))

    def test_settled_and_credit_periods_are_skipped(self):
        allocations, remainder = plan_allocation(
            {"2025-01": Decimal("0.00"), "2025-02": Decimal("-10.00"), "2025-03": Decimal("30.00")},
            Decimal("50.00"),
        )

        self.assertEqual(allocations, [Allocation("2025-03", Decimal("30.00"))])
        self.assertEqual(remainder, Decimal("20.00"))


class ReceiptAllocationTests(TestCase):
    def setUp(self):
        seed_chart()
        self.schedule = fee_schedule()

    # ----- Helpers -----

    def _accrue(self, subject_id, rate, periods, scope_id="elsewhere"):
        lease = obligation(subject_id, rate, date(2025, 1, 1), scope_id=scope_id)
        for period in periods:
            generate_accruals_for_period(period, [lease], fee_schedule=self.schedule)

    # ----- Tests -----

    def test_partial_receipt_settles_oldest_first(self):
        self._accrue("S1", "60.00", ["2025-01", "2025-02"])

        result = allocate_receipt("S1", "100.00", date(2025, 2, 15), receipt_id="R-1")

        self.assertEqual(
            [(a.period, a.amount) for a in result.allocations],
            [("2025-01", Decimal("60.00")), ("2025-02", Decimal("40.00"))],
        )
        self.assertEqual(result.unallocated_remainder, Decimal("0.00"))

        by_period = receivable_by_period("S1", date(2025, 2, 28))
        self.assertEqual(by_period["2025-01"]["outstanding"], Decimal("0.00"))
        self.assertEqual(by_period["2025-02"]["outstanding"], Decimal("20.00"))

    def test_settlement_lines_carry_the_settled_period(self):
        self._accrue("S1", "60.00", ["2025-01", "2025-02"])

        entry = allocate_receipt("S1", "100.00", date(2025, 3, 2)).entry

        settlement = entry.lines.filter(account_code="1100-S1").order_by("line_no")
        self.assertEqual(
            [(line.recognition_period, line.settlement_period) for line in settlement],
            [("2025-01", "2025-01"), ("2025-02", "2025-02")],
        )
        cash_line = entry.lines.get(account_code="1000")
        self.assertEqual(cash_line.debit, Decimal("100.00"))
        self.assertEqual(cash_line.recognition_period, "2025-03")

    def test_overpayment_goes_to_advance_liability(self):
        self._accrue("S1", "100.00", ["2025-01"])

        result = allocate_receipt("S1", "150.00", date(2025, 1, 20))

        self.assertEqual(result.allocated_total, Decimal("100.00"))
        self.assertEqual(result.unallocated_remainder, Decimal("50.00"))
        self.assertEqual(balance_of("2200", date(2025, 1, 31)), Decimal("50.00"))
        self.assertEqual(receivable_outstanding("S1", date(2025, 1, 31)), Decimal("0.00"))
        self.assertEqual(result.entry.tags["unallocated"], "50.00")

        payload = result.to_payload()
        self.assertEqual(payload["unallocated_remainder"], 50.0)
        self.assertEqual(payload["unallocated_remainder_minor"], 5000)

    def test_receipt_without_receivables_is_all_advance(self):
        result = allocate_receipt("NEW", "75.00", date(2025, 1, 5))

        self.assertEqual(result.allocations, [])
        self.assertEqual(result.unallocated_remainder, Decimal("75.00"))
        self.assertEqual(balance_of("1000", date(2025, 1, 31)), Decimal("75.00"))

    def test_outstanding_drops_by_exactly_the_allocated_amount(self):
        self._accrue("S1", "80.00", ["2025-01", "2025-02", "2025-03"])
        before = receivable_outstanding("S1", date(2025, 3, 31))

        result = allocate_receipt("S1", "130.00", date(2025, 3, 10))

        after = receivable_outstanding("S1", date(2025, 3, 31))
        self.assertEqual(before - after, result.allocated_total)
        self.assertEqual(result.allocated_total + result.unallocated_remainder, Decimal("130.00"))

    def test_receipt_id_is_applied_once(self):
        self._accrue("S1", "60.00", ["2025-01"])
        first = allocate_receipt("S1", "30.00", date(2025, 1, 10), receipt_id="R-9")
        self.assertEqual(first.entry.reference, "CASH_RECEIPT:R-9")

        with self.assertRaises(IdempotencyError):
            allocate_receipt("S1", "30.00", date(2025, 1, 11), receipt_id="R-9")

        self.assertEqual(
            LedgerEntry.objects.filter(source=LedgerEntry.SOURCE_CASH_RECEIPT).count(), 1
        )

    def test_non_positive_amount_is_rejected(self):
        for amount in ("0", "-5.00"):
            with self.assertRaises(PostingValidationError):
                allocate_receipt("S1", amount, date(2025, 1, 10))
        with self.assertRaises(PostingValidationError):
            allocate_receipt("S1", "ten", date(2025, 1, 10))

    def test_cash_account_must_be_a_cash_account(self):
        result = allocate_receipt("S1", "10.00", date(2025, 1, 10), cash_account_code="1001")
        self.assertTrue(result.entry.lines.filter(account_code="1001", debit=Decimal("10.00")).exists())

        with self.assertRaises(AccountResolutionError):
            allocate_receipt("S1", "10.00", date(2025, 1, 10), cash_account_code="4000")

    def test_receipt_inherits_the_subject_scope(self):
        self._accrue("S1", "60.00", ["2025-01"], scope_id=ST_KILDA)

        entry = allocate_receipt("S1", "60.00", date(2025, 1, 10), payment_kind="Rent").entry

        self.assertEqual(entry.scope_id, ST_KILDA)
        self.assertEqual(entry.tags["paymentKind"], "rent")
        self.assertEqual(receivable_outstanding("S1", date(2025, 1, 31), scope_id=ST_KILDA), Decimal("20.00"))

    def test_over_long_subject_id_is_rejected(self):
        with self.assertRaises(AccountResolutionError):
            allocate_receipt("S" * 70, "10.00", date(2025, 1, 10))

        self.assertFalse(LedgerEntry.objects.exists())


class PaymentKindTests(TestCase):
    def setUp(self):
        seed_chart()
        schedule = fee_schedule()
        self.lease = obligation("S1", "200.00", date(2025, 1, 1), scope_id=ST_KILDA)
        for period in ("2025-01", "2025-02"):
            generate_accruals_for_period(period, [self.lease], fee_schedule=schedule)

    def test_admin_receipt_settles_only_the_admin_fee(self):
        result = allocate_receipt("S1", "50.00", date(2025, 2, 10), payment_kind="admin")

        self.assertEqual(result.allocations, [Allocation("2025-01", Decimal("20.00"), ST_KILDA)])
        self.assertEqual(result.unallocated_remainder, Decimal("30.00"))
        self.assertEqual(balance_of("2200", date(2025, 2, 28)), Decimal("30.00"))

        by_period = receivable_by_period("S1", date(2025, 2, 28))
        self.assertEqual(by_period["2025-01"]["outstanding"], Decimal("200.00"))
        self.assertEqual(by_period["2025-02"]["outstanding"], Decimal("200.00"))

    def test_admin_fee_is_settled_once(self):
        allocate_receipt("S1", "20.00", date(2025, 1, 10), payment_kind="admin")

        again = allocate_receipt("S1", "20.00", date(2025, 1, 11), payment_kind="admin")

        self.assertEqual(again.allocations, [])
        self.assertEqual(again.unallocated_remainder, Decimal("20.00"))
        self.assertEqual(receivable_outstanding("S1", date(2025, 2, 28)), Decimal("400.00"))

    def test_admin_receipt_after_rent_cleared_the_period(self):
        allocate_receipt("S1", "220.00", date(2025, 1, 10))

        result = allocate_receipt("S1", "20.00", date(2025, 1, 12), payment_kind="admin")

        # January is already settled in full, so the money is held as an advance
        self.assertEqual(result.allocations, [])
        self.assertEqual(result.unallocated_remainder, Decimal("20.00"))

    def test_deposit_receipt_settles_the_deposit_and_holds_the_excess(self):
        post_lease_start_deposit(self.lease)

        result = allocate_receipt("S1", "250.00", date(2025, 1, 5), payment_kind="deposit")

        self.assertEqual(result.allocations, [Allocation("2025-01", Decimal("200.00"), ST_KILDA)])
        self.assertEqual(result.unallocated_remainder, Decimal("50.00"))
        self.assertTrue(result.entry.lines.filter(account_code="2020", credit=Decimal("50.00")).exists())
        self.assertEqual(balance_of("2020", date(2025, 1, 31)), Decimal("250.00"))
        self.assertEqual(balance_of("2200", date(2025, 1, 31)), Decimal("0.00"))
        # rent and admin fee are untouched
        self.assertEqual(receivable_outstanding("S1", date(2025, 2, 28)), Decimal("420.00"))

    def test_deposit_receipt_without_a_deposit_charge_is_held(self):
        result = allocate_receipt("S1", "100.00", date(2025, 1, 5), payment_kind="deposit")

        self.assertEqual(result.allocations, [])
        self.assertEqual(balance_of("2020", date(2025, 1, 31)), Decimal("100.00"))
        self.assertEqual(receivable_outstanding("S1", date(2025, 2, 28)), Decimal("420.00"))

    def test_reversed_deposit_charge_is_not_settled(self):
        deposit = post_lease_start_deposit(self.lease)
        reverse_entry(deposit, reason="Waived", reversal_date=date(2025, 1, 3))

        result = allocate_receipt("S1", "200.00", date(2025, 1, 5), payment_kind="deposit")

        self.assertEqual(result.allocations, [])
        self.assertEqual(result.unallocated_remainder, Decimal("200.00"))


class ReceiptScopeTests(TestCase):
    def setUp(self):
        seed_chart()
        schedule = fee_schedule()
        # the student moved from north to south in February
        generate_accruals_for_period(
            "2025-01", [obligation("S1", "100.00", scope_id="north")], fee_schedule=schedule
        )
        generate_accruals_for_period(
            "2025-02", [obligation("S1", "100.00", scope_id="south")], fee_schedule=schedule
        )

    def test_settlements_are_filed_under_the_scope_they_settle(self):
        result = allocate_receipt("S1", "250.00", date(2025, 2, 10), receipt_id="R-M")

        self.assertEqual([e.scope_id for e in result.entries], ["north", "south"])
        self.assertEqual(result.entry.reference, "CASH_RECEIPT:R-M")
        self.assertEqual(result.entries[1].reference, "CASH_RECEIPT:R-M:south")
        self.assertEqual([e.total_debit for e in result.entries], [Decimal("100.00"), Decimal("150.00")])
        self.assertEqual(result.received_total, Decimal("250.00"))
        self.assertEqual(result.unallocated_remainder, Decimal("50.00"))
        self.assertEqual(result.to_payload()["amount"], 250.0)

        as_of = date(2025, 2, 28)
        self.assertEqual(receivable_outstanding("S1", as_of, scope_id="north"), Decimal("0.00"))
        self.assertEqual(receivable_outstanding("S1", as_of, scope_id="south"), Decimal("0.00"))
        for scope in ("north", "south"):
            sheet = generate_balance_sheet(as_of, scope_id=scope)
            self.assertTrue(sheet["balance_check"]["balanced"], scope)

    def test_split_receipt_is_applied_once(self):
        allocate_receipt("S1", "200.00", date(2025, 2, 10), receipt_id="R-M")

        with self.assertRaises(IdempotencyError):
            allocate_receipt("S1", "200.00", date(2025, 2, 11), receipt_id="R-M")

        self.assertEqual(
            LedgerEntry.objects.filter(source=LedgerEntry.SOURCE_CASH_RECEIPT).count(), 2
        )

    def test_explicit_scope_settles_only_that_scope(self):
        result = allocate_receipt("S1", "100.00", date(2025, 2, 10), scope_id="south")

        self.assertEqual(len(result.entries), 1)
        self.assertEqual(result.allocations, [Allocation("2025-02", Decimal("100.00"), "south")])
        self.assertEqual(receivable_outstanding("S1", date(2025, 2, 28), scope_id="north"), Decimal("100.00"))
