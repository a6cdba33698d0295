# accounting/models/ledger.py

"""
======================================================
PATH: accounting/models/ledger.py
======================================================
LEDGER ENTRY + LEDGER LINE MODELS

LedgerEntry is the transaction header; LedgerLine is an atomic debit or
credit against one account code.

Guarantees:
- A posted (or void) entry is immutable: no updates, no deletes
- Lines are append-only and can only be attached while the entry is a draft
- `date` is the accounting date (recognition/settlement date) and drives
  every report; `created_at` is wall-clock only
- `reference` is the idempotency key (unique when present)
- Corrections are new entries linked through `reverses`
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from accounting.models.account import Account


def generate_transaction_id() -> str:
    return f"TXN{uuid.uuid4().hex[:16].upper()}"


class LedgerEntry(models.Model):
    STATUS_DRAFT = "draft"
    STATUS_POSTED = "posted"
    STATUS_VOID = "void"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_POSTED, "Posted"),
        (STATUS_VOID, "Void"),
    ]

    SOURCE_RENT_RECOGNITION = "rent_recognition"
    SOURCE_LEASE_START = "lease_start"
    SOURCE_EXPENSE_RECOGNITION = "expense_recognition"
    SOURCE_CASH_RECEIPT = "cash_receipt"
    SOURCE_EXPENSE_PAYMENT = "expense_payment"
    SOURCE_ADJUSTMENT = "adjustment"

    SOURCE_CHOICES = [
        (SOURCE_RENT_RECOGNITION, "Rent recognition"),
        (SOURCE_LEASE_START, "Lease start"),
        (SOURCE_EXPENSE_RECOGNITION, "Expense recognition"),
        (SOURCE_CASH_RECEIPT, "Cash receipt"),
        (SOURCE_EXPENSE_PAYMENT, "Expense payment"),
        (SOURCE_ADJUSTMENT, "Adjustment"),
    ]

    transaction_id = models.CharField(
        max_length=40,
        unique=True,
        default=generate_transaction_id,
        editable=False,
    )

    reference = models.CharField(
        max_length=200,
        blank=True,
        null=True,
        help_text="Idempotency key (e.g. RENT_ACCRUAL:<subject>:<period>:<kind>)",
    )

    date = models.DateField(help_text="Accounting date")
    description = models.TextField()

    source = models.CharField(max_length=32, choices=SOURCE_CHOICES)
    source_type = models.CharField(max_length=64, blank=True, default="")
    source_id = models.CharField(max_length=100, blank=True, default="")

    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_DRAFT,
    )

    total_debit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_credit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    scope_id = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Secondary grouping key (property / residence)",
    )
    subject_id = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Counterparty (student / tenant) this entry concerns",
    )

    tags = models.JSONField(default=dict, blank=True)

    reverses = models.OneToOneField(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reversal",
    )

    created_by = models.CharField(max_length=150, blank=True, default="system")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-date", "-created_at"]
        indexes = [
            models.Index(fields=["date"], name="ledger_entry_date_idx"),
            models.Index(fields=["status", "date"], name="ledger_entry_status_date_idx"),
            models.Index(fields=["source"], name="ledger_entry_source_idx"),
            models.Index(fields=["scope_id"], name="ledger_entry_scope_idx"),
            models.Index(fields=["subject_id"], name="ledger_entry_subject_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["reference"],
                condition=Q(reference__isnull=False) & ~Q(reference=""),
                name="uniq_ledger_entry_reference_not_blank",
            ),
            models.CheckConstraint(
                condition=Q(total_debit__gte=0) & Q(total_credit__gte=0),
                name="chk_ledger_entry_totals_non_negative",
            ),
        ]
        verbose_name = "Ledger Entry"
        verbose_name_plural = "Ledger Entries"

    def __str__(self):
        return f"{self.transaction_id} – {self.date} ({self.source})"

    @property
    def is_posted(self) -> bool:
        return self.status == self.STATUS_POSTED

    def _stored_status(self) -> str | None:
        if not self.pk:
            return None
        return type(self).objects.filter(pk=self.pk).values_list("status", flat=True).first()

    def clean(self):
        if self.reference is not None:
            ref = str(self.reference).strip()
            self.reference = ref or None

        self.description = (self.description or "").strip()
        if not self.description:
            raise ValidationError("Ledger entry description is required")

        if self.reverses_id is not None and self.reverses_id == self.pk:
            raise ValidationError("An entry cannot reverse itself")

    def save(self, *args, **kwargs):
        # Only a draft may change (draft -> posted / void, once).
        stored = self._stored_status()
        if stored is not None and stored != self.STATUS_DRAFT:
            raise ValidationError("Ledger entries are immutable once posted or voided")

        # reference uniqueness is left to the DB constraint (race-safe idempotency)
        self.full_clean(validate_constraints=False)
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "Ledger entries cannot be deleted; post a reversing entry or void the draft"
        )


class LedgerLine(models.Model):
    entry = models.ForeignKey(
        LedgerEntry,
        on_delete=models.PROTECT,
        related_name="lines",
    )

    line_no = models.PositiveSmallIntegerField()

    account_code = models.CharField(max_length=64)
    account_name = models.CharField(max_length=150)
    account_type = models.CharField(max_length=20, choices=Account.ACCOUNT_TYPES)

    debit = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    credit = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    description = models.CharField(max_length=255, blank=True, default="")

    recognition_period = models.CharField(
        max_length=7,
        blank=True,
        default="",
        help_text="YYYY-MM period this line logically belongs to",
    )
    settlement_period = models.CharField(
        max_length=7,
        blank=True,
        default="",
        help_text="YYYY-MM period a settlement line settles (blank for recognition lines)",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Ledger Line"
        verbose_name_plural = "Ledger Lines"
        ordering = ["entry_id", "line_no"]
        indexes = [
            models.Index(fields=["account_code"], name="ledger_line_account_code_idx"),
            models.Index(fields=["account_type"], name="ledger_line_account_type_idx"),
            models.Index(fields=["recognition_period"], name="ledger_line_recog_period_idx"),
            models.Index(fields=["settlement_period"], name="ledger_line_settle_period_idx"),
            models.Index(fields=["entry", "line_no"], name="ledger_line_entry_line_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["entry", "line_no"],
                name="uniq_ledger_line_entry_line_no",
            ),
            models.CheckConstraint(
                condition=Q(debit__gte=0) & Q(credit__gte=0),
                name="chk_ledger_line_amounts_non_negative",
            ),
        ]

    def __str__(self):
        side = "DR" if self.debit > 0 else "CR"
        amount = self.debit if self.debit > 0 else self.credit
        return f"{side} {amount} → {self.account_code}"

    def clean(self):
        if self.entry_id and self.entry.status != LedgerEntry.STATUS_DRAFT:
            raise ValidationError("Lines can only be attached to a draft entry")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("LedgerLine records are immutable and cannot be modified")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("LedgerLine records are immutable and cannot be deleted")
