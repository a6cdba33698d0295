# accounting/tests/test_posting_validator.py

from __future__ import annotations

from decimal import Decimal

from django.test import TestCase

from accounting.models.account import Account
from accounting.services.exceptions import (
    EmptyLineSetError,
    PostingValidationError,
    UnbalancedEntryError,
    UnknownAccountError,
)
from accounting.services.periods import InvalidPeriodError
from accounting.services.posting_validator import validate_postings
from accounting.tests.helpers import seed_chart


class PostingValidatorTests(TestCase):
    def setUp(self):
        seed_chart()

    # ----- Helpers -----

    def _pair(self, debit="100.00", credit="100.00", **extra):
        return [
            {"account_code": "1000", "debit": debit, "credit": 0, **extra},
            {"account_code": "4000", "debit": 0, "credit": credit, **extra},
        ]

    # ----- Tests -----

    def test_balanced_posting_is_accepted(self):
        validated = validate_postings(self._pair(recognition_period="2025-01"))

        self.assertEqual(validated.total_debit, Decimal("100.00"))
        self.assertEqual(validated.total_credit, Decimal("100.00"))
        self.assertEqual([line.line_no for line in validated.lines], [1, 2])
        self.assertEqual(validated.lines[0].account_name, "Cash")
        self.assertEqual(validated.lines[1].account_type, Account.INCOME)
        self.assertEqual(validated.lines[0].recognition_period, "2025-01")

    def test_fewer_than_two_lines_is_rejected(self):
        with self.assertRaises(EmptyLineSetError):
            validate_postings([])
        with self.assertRaises(EmptyLineSetError):
            validate_postings(self._pair()[:1])

    def test_unknown_account_is_rejected(self):
        postings = self._pair()
        postings[1]["account_code"] = "9999"
        with self.assertRaises(UnknownAccountError):
            validate_postings(postings)

    def test_inactive_account_is_rejected(self):
        Account.objects.filter(code="4000").update(is_active=False)
        with self.assertRaises(UnknownAccountError):
            validate_postings(self._pair())

    def test_unbalanced_posting_is_rejected(self):
        with self.assertRaises(UnbalancedEntryError):
            validate_postings(self._pair(debit="100.00", credit="99.00"))

    def test_one_cent_difference_is_unbalanced(self):
        with self.assertRaises(UnbalancedEntryError):
            validate_postings(self._pair(debit="100.00", credit="99.99"))

    def test_declared_totals_must_match_lines(self):
        with self.assertRaises(UnbalancedEntryError):
            validate_postings(self._pair(), total_debit="120.00", total_credit="100.00")

        validated = validate_postings(self._pair(), total_debit="100.00", total_credit="100.00")
        self.assertEqual(validated.total_debit, Decimal("100.00"))

    def test_line_shape_rules(self):
        negative = self._pair()
        negative[0]["debit"] = "-100.00"
        with self.assertRaises(PostingValidationError):
            validate_postings(negative)

        both_sides = self._pair()
        both_sides[0]["credit"] = "5.00"
        with self.assertRaises(PostingValidationError):
            validate_postings(both_sides)

        empty = self._pair()
        empty[0]["debit"] = 0
        with self.assertRaises(PostingValidationError):
            validate_postings(empty)

    def test_bad_period_key_is_rejected(self):
        with self.assertRaises(InvalidPeriodError):
            validate_postings(self._pair(recognition_period="2025-13"))

    def test_amounts_are_rounded_half_up(self):
        validated = validate_postings(self._pair(debit="10.005", credit="10.005"))
        self.assertEqual(validated.total_debit, Decimal("10.01"))
