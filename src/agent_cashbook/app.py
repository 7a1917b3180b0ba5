from __future__ import annotations

import logging
from typing import Any

from .config import Settings, load_settings
from .core.clock import BusinessClock
from .ledger.gateway import LedgerGateway, SubmitResult, TransactionDraft
from .ledger.models import LedgerSnapshot
from .storage.identity_store import IdentityStore
from .storage.tx_store import RecordStore, TxStore
from .sync.adapter import ErrorListener, LedgerSubscription, LedgerSync, SnapshotListener

logger = logging.getLogger(__name__)


class LedgerApp:
    """
    Wires identity, record store, sync adapter and gateway together and
    exposes the two calls a presentation layer needs: current_snapshot()
    and submit_transaction().
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: RecordStore | None = None,
        identity: IdentityStore | None = None,
        clock: BusinessClock | None = None,
        on_snapshot: SnapshotListener | None = None,
        on_error: ErrorListener | None = None,
    ):
        self.settings = settings or load_settings()
        self.clock = clock or BusinessClock.from_name(self.settings.business_tz)
        self.store = store if store is not None else TxStore(self.settings.data_dir / "tx")
        self.identity = identity or IdentityStore(self.settings.data_dir)

        self.sync = LedgerSync(
            self.store,
            clock=self.clock,
            on_snapshot=on_snapshot,
            on_error=on_error,
        )
        self.gateway = LedgerGateway(self.store, lambda: self.owner_id, clock=self.clock)
        self._owner_id: str | None = None

    @property
    def owner_id(self) -> str | None:
        return self._owner_id

    def resolve_owner(self) -> str:
        if self.settings.owner_id:
            return self.settings.owner_id.strip()
        return self.identity.get_or_create().owner_id

    def start(self) -> LedgerSubscription:
        return self.set_owner(self.resolve_owner())

    def set_owner(self, owner_id: str) -> LedgerSubscription:
        # previous subscription is cancelled by LedgerSync.start before the new one begins
        sub = self.sync.start(owner_id)
        self._owner_id = owner_id
        return sub

    def current_snapshot(self) -> LedgerSnapshot:
        return self.sync.current_snapshot()

    def submit_transaction(self, draft: TransactionDraft | dict[str, Any]) -> SubmitResult:
        return self.gateway.submit(draft)

    def close(self) -> None:
        self.sync.stop()
        self._owner_id = None
