from .adapter import LedgerSubscription, LedgerSync

__all__ = ["LedgerSync", "LedgerSubscription"]
