# accounting/api/serializers/receipts.py

from rest_framework import serializers

from accounting.services.account_resolver import SUBJECT_ID_MAX_LENGTH


class ReceiptAllocationSerializer(serializers.Serializer):
    """
    Input serializer (Swagger-visible) for recording a counterparty receipt.
    """

    subject_id = serializers.CharField(max_length=SUBJECT_ID_MAX_LENGTH)
    subject_name = serializers.CharField(required=False, allow_blank=True, default="")
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    received_at = serializers.DateField(required=False)
    scope_id = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    cash_account_code = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    receipt_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    payment_kind = serializers.CharField(required=False, default="rent")

    def validate_amount(self, value):
        if value is None:
            raise serializers.ValidationError("amount is required")
        if value <= 0:
            raise serializers.ValidationError("amount must be > 0")
        return value
