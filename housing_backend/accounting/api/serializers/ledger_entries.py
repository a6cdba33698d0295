# accounting/api/serializers/ledger_entries.py

from rest_framework import serializers

from accounting.models.ledger import LedgerEntry, LedgerLine


class LedgerLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = LedgerLine
        fields = (
            "line_no",
            "account_code",
            "account_name",
            "account_type",
            "debit",
            "credit",
            "description",
            "recognition_period",
            "settlement_period",
        )
        read_only_fields = fields


class LedgerEntrySerializer(serializers.ModelSerializer):
    lines = LedgerLineSerializer(many=True, read_only=True)
    reverses = serializers.CharField(source="reverses.transaction_id", read_only=True, default=None)

    class Meta:
        model = LedgerEntry
        fields = (
            "id",
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
            "lines",
        )
        read_only_fields = fields
