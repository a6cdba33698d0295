# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountListSerializer
from accounting.api.serializers.accruals import (
    GenerateAccrualsSerializer,
    ObligationSerializer,
)
from accounting.api.serializers.ledger_entries import (
    LedgerEntrySerializer,
    LedgerLineSerializer,
)
from accounting.api.serializers.receipts import ReceiptAllocationSerializer

__all__ = [
    "AccountListSerializer",
    "GenerateAccrualsSerializer",
    "ObligationSerializer",
    "LedgerEntrySerializer",
    "LedgerLineSerializer",
    "ReceiptAllocationSerializer",
]
