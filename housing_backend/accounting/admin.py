# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry, LedgerLine

# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "account_type",
        "parent",
        "is_active",
    )
    list_filter = ("account_type", "is_active")
    search_fields = ("code", "name")
    ordering = ("code",)
    readonly_fields = ("created_at", "updated_at")
    raw_id_fields = ("parent",)

    fieldsets = (
        (
            "Account Identity",
            {
                "fields": ("code", "name", "account_type", "parent"),
            },
        ),
        (
            "Status",
            {
                "fields": ("is_active",),
            },
        ),
        (
            "System Fields",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# LEDGER ENTRY + LINES (STRICTLY IMMUTABLE)
# ============================================================


class LedgerLineInline(admin.TabularInline):
    model = LedgerLine
    extra = 0
    can_delete = False
    ordering = ("line_no",)
    fields = (
        "line_no",
        "account_code",
        "account_name",
        "debit",
        "credit",
        "recognition_period",
        "settlement_period",
        "description",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = (
        "transaction_id",
        "date",
        "source",
        "status",
        "subject_id",
        "scope_id",
        "total_debit",
        "reference",
    )
    list_filter = ("source", "status", "scope_id")
    search_fields = ("transaction_id", "reference", "subject_id", "description")
    ordering = ("-date", "-created_at")
    date_hierarchy = "date"
    inlines = (LedgerLineInline,)

    readonly_fields = (
        "transaction_id",
        "reference",
        "date",
        "description",
        "source",
        "source_type",
        "source_id",
        "status",
        "total_debit",
        "total_credit",
        "scope_id",
        "subject_id",
        "tags",
        "reverses",
        "created_by",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
