# accounting/api/serializers/accruals.py

from rest_framework import serializers

from accounting.services.account_resolver import SUBJECT_ID_MAX_LENGTH
from accounting.services.periods import InvalidPeriodError, parse_period


class ObligationSerializer(serializers.Serializer):
    subject_id = serializers.CharField(max_length=SUBJECT_ID_MAX_LENGTH)
    subject_name = serializers.CharField(required=False, allow_blank=True, default="")
    scope_id = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    rate = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    start_date = serializers.DateField()
    end_date = serializers.DateField(required=False, allow_null=True)
    kind = serializers.CharField(required=False, default="rent")
    one_time_fee = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, allow_null=True
    )

    def validate(self, attrs):
        end_date = attrs.get("end_date")
        if end_date is not None and end_date < attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "end_date must be on or after start_date"})
        return attrs


class GenerateAccrualsSerializer(serializers.Serializer):
    """
    Input for POST /api/accounting/accruals/generate/.

    When `obligations` is omitted the configured obligation source is used.
    """

    period = serializers.CharField(max_length=7)
    obligations = ObligationSerializer(many=True, required=False)

    def validate_period(self, value):
        try:
            parse_period(value)
        except InvalidPeriodError as exc:
            raise serializers.ValidationError(str(exc)) from exc
        return value
