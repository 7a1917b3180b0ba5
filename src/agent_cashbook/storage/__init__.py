from .identity_store import Identity, IdentityStore
from .tx_store import RecordStore, StoreSubscription, TxStore

__all__ = [
    "TxStore",
    "RecordStore",
    "StoreSubscription",
    "IdentityStore",
    "Identity",
]
