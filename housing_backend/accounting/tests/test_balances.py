# accounting/tests/test_balances.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase

from accounting.models.account import Account
from accounting.services.accrual_service import generate_accruals_for_period
from accounting.services.balance_service import (
    NORMAL_BALANCE,
    balance_of,
    balances_by_account,
    net_activity,
    receivable_aggregate,
    scopes_with_activity,
    signed_balance,
    subjects_with_receivables,
)
from accounting.services.exceptions import UnknownAccountError
from accounting.services.journal_entry_service import create_draft
from accounting.services.payment_allocation_service import allocate_receipt
from accounting.tests.helpers import ST_KILDA, fee_schedule, obligation, post_simple, seed_chart


class SignRuleTests(TestCase):
    def test_one_rule_per_classification(self):
        self.assertEqual(set(NORMAL_BALANCE), {t for t, _ in Account.ACCOUNT_TYPES})

        self.assertEqual(signed_balance(Account.ASSET, "100", "30"), Decimal("70.00"))
        self.assertEqual(signed_balance(Account.EXPENSE, "10", "0"), Decimal("10.00"))
        self.assertEqual(signed_balance(Account.LIABILITY, "30", "100"), Decimal("70.00"))
        self.assertEqual(signed_balance(Account.EQUITY, "0", "5"), Decimal("5.00"))
        self.assertEqual(signed_balance(Account.INCOME, "100", "30"), Decimal("-70.00"))


class BalanceAggregationTests(TestCase):
    def setUp(self):
        seed_chart()
        post_simple("1000", "3001", "500.00", date(2025, 1, 1))
        post_simple("5001", "1000", "40.00", date(2025, 1, 15))
        post_simple("1000", "4000", "200.00", date(2025, 2, 3))
        post_simple("5002", "1000", "25.50", date(2025, 3, 1))

    def test_balance_as_of_dates(self):
        self.assertEqual(balance_of("1000", date(2024, 12, 31)), Decimal("0.00"))
        self.assertEqual(balance_of("1000", date(2025, 1, 31)), Decimal("460.00"))
        self.assertEqual(balance_of("1000", date(2025, 3, 31)), Decimal("634.50"))
        self.assertEqual(balance_of("4000", date(2025, 3, 31)), Decimal("200.00"))
        self.assertEqual(balance_of("3001", date(2025, 3, 31)), Decimal("500.00"))

    def test_balance_difference_equals_net_activity(self):
        checkpoints = [date(2024, 12, 31), date(2025, 1, 1), date(2025, 1, 20), date(2025, 2, 28), date(2025, 3, 31)]
        for code in ("1000", "4000", "5001", "5002", "3001"):
            for t1 in checkpoints:
                for t2 in checkpoints:
                    if t2 < t1:
                        continue
                    self.assertEqual(
                        balance_of(code, t2) - balance_of(code, t1),
                        net_activity(code, t1, t2),
                        msg=f"{code} {t1}..{t2}",
                    )

    def test_drafts_do_not_count(self):
        create_draft(
            description="Unposted",
            postings=[
                {"account_code": "1000", "debit": "999.00", "credit": 0},
                {"account_code": "3001", "debit": 0, "credit": "999.00"},
            ],
            source="adjustment",
            date=date(2025, 1, 2),
        )
        self.assertEqual(balance_of("1000", date(2025, 1, 31)), Decimal("460.00"))

    def test_unknown_account(self):
        with self.assertRaises(UnknownAccountError):
            balance_of("8888", date(2025, 1, 31))

    def test_balances_by_account_rows(self):
        rows = {r["code"]: r for r in balances_by_account(date(2025, 3, 31))}

        self.assertEqual(set(rows), {"1000", "3001", "4000", "5001", "5002"})
        self.assertEqual(rows["1000"]["debit_total"], Decimal("700.00"))
        self.assertEqual(rows["1000"]["credit_total"], Decimal("65.50"))
        self.assertEqual(rows["1000"]["balance"], Decimal("634.50"))
        self.assertEqual(rows["5001"]["name"], "Maintenance")
        self.assertIsNone(rows["4000"]["parent_code"])


class ReceivableQueryTests(TestCase):
    def setUp(self):
        seed_chart()
        schedule = fee_schedule()
        generate_accruals_for_period(
            "2025-01",
            [obligation("S1", "100.00", scope_id=ST_KILDA), obligation("S2", "50.00", scope_id="north")],
            fee_schedule=schedule,
        )

    def test_aggregate_covers_all_subaccounts(self):
        self.assertEqual(receivable_aggregate(date(2025, 1, 31)), Decimal("170.00"))
        self.assertEqual(receivable_aggregate(date(2025, 1, 31), scope_id="north"), Decimal("50.00"))

    def test_aggregate_can_go_negative(self):
        allocate_receipt("S2", "50.00", date(2025, 1, 10))
        post_simple("4000", "1100-S2", "50.00", date(2025, 1, 11), scope_id="north")

        self.assertEqual(receivable_aggregate(date(2025, 1, 31), scope_id="north"), Decimal("-50.00"))

    def test_subject_and_scope_discovery(self):
        rows = {r["code"]: r for r in balances_by_account(date(2025, 1, 31))}
        self.assertEqual(rows["1100-S1"]["parent_code"], "1100")

        self.assertEqual(subjects_with_receivables(), ["S1", "S2"])
        self.assertEqual(subjects_with_receivables(scope_id=ST_KILDA), ["S1"])
        self.assertEqual(scopes_with_activity(), ["north", ST_KILDA])
