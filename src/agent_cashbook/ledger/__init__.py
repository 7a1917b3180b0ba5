from .classify import classify, is_known_type
from .compute import compute_facts, recompute
from .gateway import LedgerGateway, SubmitResult, TransactionDraft
from .models import TX_TYPES, DerivedLedgerRow, LedgerSnapshot, TransactionRecord, to_amount

__all__ = [
    "classify",
    "is_known_type",
    "recompute",
    "compute_facts",
    "LedgerGateway",
    "SubmitResult",
    "TransactionDraft",
    "TX_TYPES",
    "TransactionRecord",
    "DerivedLedgerRow",
    "LedgerSnapshot",
    "to_amount",
]
