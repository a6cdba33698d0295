# accounting/models/account.py

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

SUBACCOUNT_SEPARATOR = "-"
CODE_MAX_LENGTH = 64


class Account(models.Model):
    """
    A single account in the chart of accounts.

    Guarantees:
    - Account codes are unique
    - Code + name are normalized (trimmed)
    - Sub-accounts follow the "<control code>-<suffix>" convention and point
      at their control account via `parent` (e.g. 1100-<student> under 1100)
    """

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"

    ACCOUNT_TYPES = [
        (ASSET, "Asset"),
        (LIABILITY, "Liability"),
        (EQUITY, "Equity"),
        (INCOME, "Income"),
        (EXPENSE, "Expense"),
    ]

    code = models.CharField(max_length=CODE_MAX_LENGTH, unique=True)
    name = models.CharField(max_length=150)

    account_type = models.CharField(
        max_length=20,
        choices=ACCOUNT_TYPES,
    )

    parent = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="subaccounts",
        help_text="Control account for hierarchical sub-accounts.",
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["account_type"], name="acct_account_type_idx"),
            models.Index(fields=["is_active"], name="acct_is_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_account_name_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def control_code(self) -> str:
        return self.code.split(SUBACCOUNT_SEPARATOR, 1)[0]

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()

        if not self.code:
            raise ValidationError("Account code is required")
        if not self.name:
            raise ValidationError("Account name is required")

        if self.parent_id is not None:
            if self.parent.account_type != self.account_type:
                raise ValidationError("Sub-account must share its control account's type")
            prefix = f"{self.parent.code}{SUBACCOUNT_SEPARATOR}"
            if not self.code.startswith(prefix):
                raise ValidationError(f"Sub-account code must start with {prefix!r}")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
