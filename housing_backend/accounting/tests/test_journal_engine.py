# accounting/tests/test_journal_engine.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models.ledger import LedgerEntry, LedgerLine
from accounting.services.exceptions import (
    IdempotencyError,
    JournalEntryCreationError,
    ReversalError,
    UnbalancedEntryError,
)
from accounting.services.journal_entry_service import (
    build_reference,
    create_draft,
    post_draft,
    post_entry,
    reverse_entry,
    void_draft,
)
from accounting.tests.helpers import post_simple, seed_chart


class LedgerEngineTests(TestCase):
    def setUp(self):
        seed_chart()

    # ----- Helpers -----

    def _postings(self, amount="50.00"):
        return [
            {"account_code": "1000", "debit": amount, "credit": 0, "recognition_period": "2025-01"},
            {"account_code": "3001", "debit": 0, "credit": amount, "recognition_period": "2025-01"},
        ]

    def _draft(self, **kwargs):
        return create_draft(
            description=kwargs.pop("description", "Owner contribution"),
            postings=kwargs.pop("postings", self._postings()),
            source=LedgerEntry.SOURCE_ADJUSTMENT,
            date=date(2025, 1, 5),
            **kwargs,
        )

    # ----- Posting -----

    def test_post_entry_persists_balanced_posted_entry(self):
        entry = post_simple("1000", "3001", "50.00", date(2025, 1, 5), reference="CAPITAL:1")

        entry.refresh_from_db()
        self.assertEqual(entry.status, LedgerEntry.STATUS_POSTED)
        self.assertEqual(entry.total_debit, Decimal("50.00"))
        self.assertEqual(entry.total_credit, Decimal("50.00"))
        self.assertTrue(entry.transaction_id.startswith("TXN"))
        self.assertEqual(entry.lines.count(), 2)

    def test_unbalanced_entry_persists_nothing(self):
        postings = self._postings()
        postings[1]["credit"] = "40.00"

        with self.assertRaises(UnbalancedEntryError):
            post_entry(
                description="Broken",
                postings=postings,
                source=LedgerEntry.SOURCE_ADJUSTMENT,
                date=date(2025, 1, 5),
            )

        self.assertEqual(LedgerEntry.objects.count(), 0)
        self.assertEqual(LedgerLine.objects.count(), 0)

    def test_unknown_source_is_rejected(self):
        with self.assertRaises(JournalEntryCreationError):
            create_draft(
                description="x",
                postings=self._postings(),
                source="invoice",
            )

    def test_build_reference(self):
        self.assertEqual(
            build_reference("rent_accrual", "S1", "2025-01", "rent"),
            "RENT_ACCRUAL:S1:2025-01:rent",
        )
        with self.assertRaises(JournalEntryCreationError):
            build_reference("CASH_RECEIPT", "")

    # ----- Idempotency -----

    def test_duplicate_reference_is_rejected(self):
        post_simple("1000", "3001", "50.00", date(2025, 1, 5), reference="CAPITAL:1")

        with self.assertRaises(IdempotencyError):
            post_simple("1000", "3001", "50.00", date(2025, 1, 6), reference="CAPITAL:1")

        self.assertEqual(LedgerEntry.objects.filter(reference="CAPITAL:1").count(), 1)

    # ----- Draft lifecycle -----

    def test_draft_then_post(self):
        draft = self._draft()
        self.assertEqual(draft.status, LedgerEntry.STATUS_DRAFT)

        posted = post_draft(draft)
        self.assertEqual(posted.status, LedgerEntry.STATUS_POSTED)

        with self.assertRaises(JournalEntryCreationError):
            post_draft(posted)

    def test_voided_draft_releases_reference(self):
        draft = self._draft(reference="CAPITAL:2")
        voided = void_draft(draft)

        self.assertEqual(voided.status, LedgerEntry.STATUS_VOID)
        self.assertIsNone(voided.reference)
        self.assertEqual(voided.tags["voidedReference"], "CAPITAL:2")

        retry = self._draft(reference="CAPITAL:2")
        self.assertEqual(retry.reference, "CAPITAL:2")

        with self.assertRaises(JournalEntryCreationError):
            void_draft(post_draft(retry))

    # ----- Immutability -----

    def test_posted_entry_cannot_be_modified_or_deleted(self):
        entry = post_simple("1000", "3001", "50.00", date(2025, 1, 5))

        entry.description = "Tampered"
        with self.assertRaises(ValidationError):
            entry.save()

        with self.assertRaises(ValidationError):
            entry.delete()

        line = entry.lines.first()
        line.debit = Decimal("1.00")
        with self.assertRaises(ValidationError):
            line.save()
        with self.assertRaises(ValidationError):
            line.delete()

    def test_lines_cannot_be_attached_to_posted_entry(self):
        entry = post_simple("1000", "3001", "50.00", date(2025, 1, 5))

        with self.assertRaises(ValidationError):
            LedgerLine(
                entry=entry,
                line_no=3,
                account_code="1000",
                account_name="Cash",
                account_type="ASSET",
                debit=Decimal("1.00"),
            ).save()

    # ----- Reversal -----

    def test_reversal_mirrors_lines_and_links_original(self):
        original = post_simple("1000", "3001", "50.00", date(2025, 1, 5))

        reversal = reverse_entry(original, reason="Entered twice", reversal_date=date(2025, 1, 9))

        self.assertEqual(reversal.source, LedgerEntry.SOURCE_ADJUSTMENT)
        self.assertEqual(reversal.reverses_id, original.pk)
        self.assertEqual(reversal.reference, f"REVERSAL:{original.transaction_id}")
        self.assertEqual(reversal.tags["reversalOf"], original.transaction_id)
        self.assertEqual(reversal.tags["reversedSource"], LedgerEntry.SOURCE_ADJUSTMENT)
        self.assertEqual(reversal.tags["reason"], "Entered twice")

        original_lines = list(original.lines.order_by("line_no"))
        mirrored = list(reversal.lines.order_by("line_no"))
        for o, m in zip(original_lines, mirrored):
            self.assertEqual(o.account_code, m.account_code)
            self.assertEqual(o.debit, m.credit)
            self.assertEqual(o.credit, m.debit)

        # original is untouched
        original.refresh_from_db()
        self.assertEqual(original.status, LedgerEntry.STATUS_POSTED)

    def test_entry_can_only_be_reversed_once(self):
        original = post_simple("1000", "3001", "50.00", date(2025, 1, 5))
        reverse_entry(original, reason="Wrong amount")

        with self.assertRaises(ReversalError):
            reverse_entry(original, reason="Again")

    def test_reversal_requires_reason_and_posted_entry(self):
        original = post_simple("1000", "3001", "50.00", date(2025, 1, 5))
        with self.assertRaises(ReversalError):
            reverse_entry(original, reason="  ")

        with self.assertRaises(ReversalError):
            reverse_entry(self._draft(), reason="Not posted yet")
