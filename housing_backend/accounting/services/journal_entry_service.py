# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
LEDGER POSTING SERVICE (ACCOUNTING ENGINE)

This module is the ONLY place allowed to:
- Create LedgerEntry / LedgerLine rows
- Transition an entry draft -> posted (after validation)
- Enforce idempotency via reference (prevents double-posting)
- Post reversing entries (the only correction path for posted entries)

Everything else (accruals, receipts, expenses) must pass through here.
"""

from __future__ import annotations

import logging
from datetime import date

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.models.ledger import LedgerEntry, LedgerLine
from accounting.services.exceptions import (
    IdempotencyError,
    JournalEntryCreationError,
    ReversalError,
)
from accounting.services.posting_validator import ValidatedPosting, validate_postings

logger = logging.getLogger(__name__)

VALID_SOURCES = {value for value, _ in LedgerEntry.SOURCE_CHOICES}


def build_reference(kind: str, *parts) -> str:
    """Deterministic idempotency key, e.g. RENT_ACCRUAL:<subject>:<period>:<kind>."""
    kind = str(kind or "").strip().upper()
    cleaned = [str(p).strip() for p in parts]
    if not kind or any(not p for p in cleaned):
        raise JournalEntryCreationError("Invalid reference parts")
    return ":".join([kind, *cleaned])


def reference_exists(reference: str) -> bool:
    return LedgerEntry.objects.filter(reference=reference).exists()


def _normalize_date(value) -> date:
    if value is None:
        return timezone.localdate()
    if hasattr(value, "date") and callable(value.date):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    if isinstance(value, date):
        return value
    raise JournalEntryCreationError(f"Invalid accounting date: {value!r}")


def _write_lines(entry: LedgerEntry, validated: ValidatedPosting) -> None:
    LedgerLine.objects.bulk_create(
        [
            LedgerLine(
                entry=entry,
                line_no=line.line_no,
                account_code=line.account_code,
                account_name=line.account_name,
                account_type=line.account_type,
                debit=line.debit,
                credit=line.credit,
                description=line.description,
                recognition_period=line.recognition_period,
                settlement_period=line.settlement_period,
            )
            for line in validated.lines
        ]
    )


@transaction.atomic
def create_draft(
    *,
    description: str,
    postings: list,
    source: str,
    date=None,
    scope_id: str = "",
    subject_id: str = "",
    source_type: str = "",
    source_id: str = "",
    reference: str | None = None,
    tags: dict | None = None,
    reverses: LedgerEntry | None = None,
    created_by: str = "system",
) -> LedgerEntry:
    description = (description or "").strip()
    if not description:
        raise JournalEntryCreationError("Ledger entry description is required")

    if source not in VALID_SOURCES:
        raise JournalEntryCreationError(f"Unknown source kind {source!r}")

    validated = validate_postings(postings)

    reference = (reference or "").strip() or None
    if reference and reference_exists(reference):
        raise IdempotencyError(f"Ledger entry already exists for reference {reference}")

    try:
        with transaction.atomic():
            entry = LedgerEntry.objects.create(
                reference=reference,
                date=_normalize_date(date),
                description=description,
                source=source,
                source_type=source_type or "",
                source_id=str(source_id or ""),
                status=LedgerEntry.STATUS_DRAFT,
                total_debit=validated.total_debit,
                total_credit=validated.total_credit,
                scope_id=str(scope_id or ""),
                subject_id=str(subject_id or ""),
                tags=dict(tags or {}),
                reverses=reverses,
                created_by=created_by or "system",
            )
    except IntegrityError as exc:
        if reference and reference_exists(reference):
            raise IdempotencyError(
                f"Ledger entry already exists for reference {reference}"
            ) from exc
        raise JournalEntryCreationError(f"Failed to create ledger entry: {exc}") from exc
    except ValidationError as exc:
        raise JournalEntryCreationError(f"Invalid ledger entry: {exc}") from exc

    _write_lines(entry, validated)
    return entry


@transaction.atomic
def post_draft(entry: LedgerEntry) -> LedgerEntry:
    """
    Validate a stored draft against its own lines and declared totals,
    then transition it to posted.
    """
    entry = LedgerEntry.objects.select_for_update().get(pk=entry.pk)
    if entry.status != LedgerEntry.STATUS_DRAFT:
        raise JournalEntryCreationError(
            f"Only draft entries can be posted ({entry.transaction_id} is {entry.status})"
        )

    postings = [
        {
            "account_code": line.account_code,
            "debit": line.debit,
            "credit": line.credit,
            "recognition_period": line.recognition_period,
            "settlement_period": line.settlement_period,
        }
        for line in entry.lines.order_by("line_no")
    ]
    validate_postings(
        postings,
        total_debit=entry.total_debit,
        total_credit=entry.total_credit,
    )

    entry.status = LedgerEntry.STATUS_POSTED
    entry.save(update_fields=["status"])
    return entry


@transaction.atomic
def void_draft(entry: LedgerEntry) -> LedgerEntry:
    entry = LedgerEntry.objects.select_for_update().get(pk=entry.pk)
    if entry.status != LedgerEntry.STATUS_DRAFT:
        raise JournalEntryCreationError(
            "Only drafts can be voided; posted entries must be reversed"
        )
    # frees the idempotency key for a corrected retry
    if entry.reference:
        entry.tags = {**(entry.tags or {}), "voidedReference": entry.reference}
        entry.reference = None
    entry.status = LedgerEntry.STATUS_VOID
    entry.save(update_fields=["status", "reference", "tags"])
    return entry


@transaction.atomic
def post_entry(**kwargs) -> LedgerEntry:
    """
    Create + validate + post in one atomic step. Accepts the same keyword
    arguments as create_draft().
    """
    entry = create_draft(**kwargs)
    entry = post_draft(entry)

    logger.info(
        "Posted %s %s (%s) debit=%s credit=%s ref=%s",
        entry.source,
        entry.transaction_id,
        entry.date,
        entry.total_debit,
        entry.total_credit,
        entry.reference or "-",
    )
    return entry


@transaction.atomic
def reverse_entry(
    entry: LedgerEntry,
    *,
    reason: str,
    reversal_date=None,
    created_by: str = "system",
) -> LedgerEntry:
    """
    Additive correction: posts a mirror-image adjustment entry (debits and
    credits swapped, period tags kept) linked to the original.
    """
    reason = (reason or "").strip()
    if not reason:
        raise ReversalError("A reversal reason is required")

    original = LedgerEntry.objects.select_for_update().get(pk=entry.pk)
    if original.status != LedgerEntry.STATUS_POSTED:
        raise ReversalError(f"Only posted entries can be reversed ({original.status})")
    if LedgerEntry.objects.filter(reverses=original).exists():
        raise ReversalError(f"Entry {original.transaction_id} has already been reversed")

    postings = [
        {
            "account_code": line.account_code,
            "debit": line.credit,
            "credit": line.debit,
            "description": f"Reversal: {line.description}"[:255],
            "recognition_period": line.recognition_period,
            "settlement_period": line.settlement_period,
        }
        for line in original.lines.order_by("line_no")
    ]

    tags = {
        **(original.tags or {}),
        "reversalOf": original.transaction_id,
        "reversedSource": original.source,
        "reason": reason,
    }

    return post_entry(
        description=f"Reversal of {original.transaction_id}: {reason}",
        postings=postings,
        source=LedgerEntry.SOURCE_ADJUSTMENT,
        date=reversal_date,
        scope_id=original.scope_id,
        subject_id=original.subject_id,
        source_type="LedgerEntry",
        source_id=str(original.pk),
        reference=build_reference("REVERSAL", original.transaction_id),
        tags=tags,
        reverses=original,
        created_by=created_by,
    )
