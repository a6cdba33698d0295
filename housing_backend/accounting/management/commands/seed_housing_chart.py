# accounting/management/commands/seed_housing_chart.py

from django.core.management.base import BaseCommand
from django.db import transaction

from accounting.models.account import Account

HOUSING_ACCOUNTS = [
    # ASSETS
    ("1000", "Cash", Account.ASSET),
    ("1001", "Bank Account", Account.ASSET),
    ("1002", "Ecocash", Account.ASSET),
    ("1003", "Innbucks", Account.ASSET),
    ("1004", "Petty Cash", Account.ASSET),
    ("1010", "General Petty Cash", Account.ASSET),
    ("1011", "Admin Petty Cash", Account.ASSET),
    ("1100", "Accounts Receivable - Tenants", Account.ASSET),
    # LIABILITIES
    ("2000", "Accounts Payable", Account.LIABILITY),
    ("2020", "Tenant Deposits Held", Account.LIABILITY),
    ("2200", "Advance Payment Liability", Account.LIABILITY),
    # EQUITY
    ("3001", "Owner Capital", Account.EQUITY),
    ("3101", "Retained Earnings", Account.EQUITY),
    # INCOME
    ("4000", "Rental Income", Account.INCOME),
    ("4100", "Administrative Fees", Account.INCOME),
    # EXPENSES
    ("5000", "General Expenses", Account.EXPENSE),
    ("5001", "Maintenance", Account.EXPENSE),
    ("5002", "Utilities", Account.EXPENSE),
    ("5003", "Cleaning", Account.EXPENSE),
    ("5004", "Security", Account.EXPENSE),
    ("5099", "Other Operating Expenses", Account.EXPENSE),
]


class Command(BaseCommand):
    help = "Seed the student-housing chart of accounts (idempotent)"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding student-housing chart of accounts...")

        created_count = 0
        updated_count = 0

        for code, name, account_type in HOUSING_ACCOUNTS:
            acc, acc_created = Account.objects.get_or_create(
                code=code,
                defaults={
                    "name": name,
                    "account_type": account_type,
                    "is_active": True,
                },
            )

            if acc_created:
                created_count += 1
                continue

            needs_update = False
            if acc.name != name:
                acc.name = name
                needs_update = True
            if acc.account_type != account_type:
                acc.account_type = account_type
                needs_update = True
            if not acc.is_active:
                acc.is_active = True
                needs_update = True

            if needs_update:
                acc.save(update_fields=["name", "account_type", "is_active", "updated_at"])
                updated_count += 1

        self.stdout.write(
            self.style.SUCCESS(
                f"Housing chart seeded ({created_count} new accounts, {updated_count} updated)."
            )
        )
