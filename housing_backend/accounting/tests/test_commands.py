# accounting/tests/test_commands.py

from __future__ import annotations

from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from accounting.management.commands.seed_housing_chart import HOUSING_ACCOUNTS
from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry

PROVIDER = "accounting.tests.helpers.sample_obligations"


class SeedHousingChartTests(TestCase):
    def test_seed_is_idempotent_and_repairs(self):
        call_command("seed_housing_chart", stdout=StringIO())
        self.assertEqual(Account.objects.count(), len(HOUSING_ACCOUNTS))

        Account.objects.filter(code="2200").update(name="Wrong", is_active=False)

        out = StringIO()
        call_command("seed_housing_chart", stdout=out)

        self.assertEqual(Account.objects.count(), len(HOUSING_ACCOUNTS))
        advance = Account.objects.get(code="2200")
        self.assertEqual(advance.name, "Advance Payment Liability")
        self.assertTrue(advance.is_active)
        self.assertIn("0 new accounts, 1 updated", out.getvalue())


class GenerateAccrualsCommandTests(TestCase):
    def setUp(self):
        call_command("seed_housing_chart", stdout=StringIO())

    @override_settings(ACCOUNTING_OBLIGATION_SOURCE=PROVIDER)
    def test_posts_and_is_safe_to_rerun(self):
        out = StringIO()
        call_command("generate_accruals", period="2025-03", stdout=out)

        self.assertIn("2 accruals posted", out.getvalue())
        entries = LedgerEntry.objects.filter(source=LedgerEntry.SOURCE_RENT_RECOGNITION)
        # S1 starts in March at st-kilda (rent + admin fee); S2 is a running lease
        self.assertEqual(
            sorted((e.subject_id, str(e.total_debit)) for e in entries),
            [("S1", "220.00"), ("S2", "150.00")],
        )

        out = StringIO()
        call_command("generate_accruals", period="2025-03", stdout=out)
        self.assertIn("0 accruals posted, 2 skipped", out.getvalue())
        self.assertIn("already accrued", out.getvalue())

    @override_settings(ACCOUNTING_OBLIGATION_SOURCE=PROVIDER)
    def test_dry_run_posts_nothing(self):
        out = StringIO()
        call_command("generate_accruals", period="2025-03", dry_run=True, stdout=out)

        self.assertIn("2 obligations for 2025-03 (dry run)", out.getvalue())
        self.assertEqual(LedgerEntry.objects.count(), 0)

    @override_settings(ACCOUNTING_OBLIGATION_SOURCE="")
    def test_missing_source_is_a_command_error(self):
        with self.assertRaises(CommandError):
            call_command("generate_accruals", period="2025-03", stdout=StringIO())

    @override_settings(ACCOUNTING_OBLIGATION_SOURCE=PROVIDER)
    def test_bad_period_is_a_command_error(self):
        with self.assertRaises(CommandError):
            call_command("generate_accruals", period="2025-3", stdout=StringIO())


class GenerateAccrualsBadRowsTests(TestCase):
    def setUp(self):
        call_command("seed_housing_chart", stdout=StringIO())

    @override_settings(ACCOUNTING_OBLIGATION_SOURCE="accounting.tests.helpers.obligations_with_bad_rows")
    def test_malformed_rows_are_reported_not_fatal(self):
        out = StringIO()
        call_command("generate_accruals", period="2025-03", stdout=out)

        self.assertIn("1 accruals posted, 2 skipped", out.getvalue())
        self.assertIn("skipped S8: invalid obligation", out.getvalue())
        self.assertEqual(LedgerEntry.objects.count(), 1)

    @override_settings(ACCOUNTING_OBLIGATION_SOURCE="accounting.tests.helpers.obligations_with_bad_rows")
    def test_dry_run_lists_malformed_rows(self):
        out = StringIO()
        call_command("generate_accruals", period="2025-03", dry_run=True, stdout=out)

        self.assertIn("invalid obligation", out.getvalue())
        self.assertIn("3 obligations for 2025-03 (dry run)", out.getvalue())
