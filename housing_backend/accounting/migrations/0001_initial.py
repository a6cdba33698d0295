import decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

import accounting.models.ledger


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(max_length=150)),
                (
                    "account_type",
                    models.CharField(
                        choices=[
                            ("ASSET", "Asset"),
                            ("LIABILITY", "Liability"),
                            ("EQUITY", "Equity"),
                            ("INCOME", "Income"),
                            ("EXPENSE", "Expense"),
                        ],
                        max_length=20,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        help_text="Control account for hierarchical sub-accounts.",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="subaccounts",
                        to="accounting.account",
                    ),
                ),
            ],
            options={
                "verbose_name": "Account",
                "verbose_name_plural": "Accounts",
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["account_type"], name="acct_account_type_idx"),
                    models.Index(fields=["is_active"], name="acct_is_active_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("code", ""), _negated=True),
                        name="chk_account_code_not_blank",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("name", ""), _negated=True),
                        name="chk_account_name_not_blank",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "transaction_id",
                    models.CharField(
                        default=accounting.models.ledger.generate_transaction_id,
                        editable=False,
                        max_length=40,
                        unique=True,
                    ),
                ),
                (
                    "reference",
                    models.CharField(
                        blank=True,
                        help_text="Idempotency key (e.g. RENT_ACCRUAL:<subject>:<period>:<kind>)",
                        max_length=200,
                        null=True,
                    ),
                ),
                ("date", models.DateField(help_text="Accounting date")),
                ("description", models.TextField()),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("rent_recognition", "Rent recognition"),
                            ("lease_start", "Lease start"),
                            ("expense_recognition", "Expense recognition"),
                            ("cash_receipt", "Cash receipt"),
                            ("expense_payment", "Expense payment"),
                            ("adjustment", "Adjustment"),
                        ],
                        max_length=32,
                    ),
                ),
                ("source_type", models.CharField(blank=True, default="", max_length=64)),
                ("source_id", models.CharField(blank=True, default="", max_length=100)),
                (
                    "status",
                    models.CharField(
                        choices=[("draft", "Draft"), ("posted", "Posted"), ("void", "Void")],
                        default="draft",
                        max_length=10,
                    ),
                ),
                ("total_debit", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=14)),
                ("total_credit", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=14)),
                (
                    "scope_id",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Secondary grouping key (property / residence)",
                        max_length=100,
                    ),
                ),
                (
                    "subject_id",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Counterparty (student / tenant) this entry concerns",
                        max_length=100,
                    ),
                ),
                ("tags", models.JSONField(blank=True, default=dict)),
                ("created_by", models.CharField(blank=True, default="system", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "reverses",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reversal",
                        to="accounting.ledgerentry",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ledger Entry",
                "verbose_name_plural": "Ledger Entries",
                "ordering": ["-date", "-created_at"],
                "indexes": [
                    models.Index(fields=["date"], name="ledger_entry_date_idx"),
                    models.Index(fields=["status", "date"], name="ledger_entry_status_date_idx"),
                    models.Index(fields=["source"], name="ledger_entry_source_idx"),
                    models.Index(fields=["scope_id"], name="ledger_entry_scope_idx"),
                    models.Index(fields=["subject_id"], name="ledger_entry_subject_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("reference__isnull", False), models.Q(("reference", ""), _negated=True)),
                        fields=("reference",),
                        name="uniq_ledger_entry_reference_not_blank",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_debit__gte", 0), ("total_credit__gte", 0)),
                        name="chk_ledger_entry_totals_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveSmallIntegerField()),
                ("account_code", models.CharField(max_length=64)),
                ("account_name", models.CharField(max_length=150)),
                (
                    "account_type",
                    models.CharField(
                        choices=[
                            ("ASSET", "Asset"),
                            ("LIABILITY", "Liability"),
                            ("EQUITY", "Equity"),
                            ("INCOME", "Income"),
                            ("EXPENSE", "Expense"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "debit",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.00"))],
                    ),
                ),
                (
                    "credit",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.00"))],
                    ),
                ),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                (
                    "recognition_period",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="YYYY-MM period this line logically belongs to",
                        max_length=7,
                    ),
                ),
                (
                    "settlement_period",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="YYYY-MM period a settlement line settles (blank for recognition lines)",
                        max_length=7,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "entry",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="lines",
                        to="accounting.ledgerentry",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ledger Line",
                "verbose_name_plural": "Ledger Lines",
                "ordering": ["entry_id", "line_no"],
                "indexes": [
                    models.Index(fields=["account_code"], name="ledger_line_account_code_idx"),
                    models.Index(fields=["account_type"], name="ledger_line_account_type_idx"),
                    models.Index(fields=["recognition_period"], name="ledger_line_recog_period_idx"),
                    models.Index(fields=["settlement_period"], name="ledger_line_settle_period_idx"),
                    models.Index(fields=["entry", "line_no"], name="ledger_line_entry_line_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("entry", "line_no"),
                        name="uniq_ledger_line_entry_line_no",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("debit__gte", 0), ("credit__gte", 0)),
                        name="chk_ledger_line_amounts_non_negative",
                    ),
                ],
            },
        ),
    ]
