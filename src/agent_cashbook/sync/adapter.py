from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Callable

from ..errors import StoreError
from ..ledger.compute import recompute
from ..ledger.models import LedgerSnapshot, TransactionRecord
from ..storage.tx_store import CancelHandle, RecordStore

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[LedgerSnapshot], None]
ErrorListener = Callable[[Exception], None]


class LedgerSubscription:
    """
    Handle for one owner's live ledger. cancel() may be called any number
    of times; once cancelled, nothing from this subscription reaches the
    consumer.
    """

    def __init__(self, sync: "LedgerSync", owner_id: str):
        self._sync = sync
        self.owner_id = owner_id
        self._store_handle: CancelHandle | None = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        handle, self._store_handle = self._store_handle, None
        if handle is not None:
            handle.cancel()
        self._sync._release(self)


class LedgerSync:
    """
    Keeps the derived ledger of one owner in step with the record store.

    Each store notification carries the owner's full record set; the whole
    snapshot is rebuilt and swapped in one step. Store errors are forwarded
    to the consumer and leave the last good snapshot in place.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Callable[[], date],
        on_snapshot: SnapshotListener | None = None,
        on_error: ErrorListener | None = None,
    ):
        self._store = store
        self._clock = clock
        self._on_snapshot = on_snapshot
        self._on_error = on_error

        self._lock = threading.RLock()
        self._subscription: LedgerSubscription | None = None
        self._snapshot = LedgerSnapshot.empty()
        self._records: list[TransactionRecord] | None = None
        self._last_error: Exception | None = None
        # every swap gets a version; listeners only ever see versions in increasing order
        self._version = 0
        self._published_version = 0
        self._publish_lock = threading.RLock()

    @property
    def owner_id(self) -> str | None:
        sub = self._subscription
        return sub.owner_id if sub is not None else None

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    def current_snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return self._snapshot

    def start(self, owner_id: str) -> LedgerSubscription:
        self.stop()

        sub = LedgerSubscription(self, owner_id)
        with self._lock:
            self._subscription = sub
            self._snapshot = LedgerSnapshot.empty()
            self._records = None
            self._last_error = None

        logger.info("Ledger sync started for owner=%s", owner_id)
        handle = self._store.subscribe(
            owner_id,
            lambda records: self._handle_change(sub, records),
            lambda err: self._handle_error(sub, err),
        )
        if sub.active:
            sub._store_handle = handle
        else:
            # cancelled from inside the initial callback
            handle.cancel()
        return sub

    def stop(self) -> None:
        sub = self._subscription
        if sub is not None:
            sub.cancel()

    def _release(self, sub: LedgerSubscription) -> None:
        with self._lock:
            if self._subscription is sub:
                self._subscription = None
        logger.info("Ledger sync stopped for owner=%s", sub.owner_id)

    def _is_current(self, sub: LedgerSubscription) -> bool:
        return sub.active and self._subscription is sub

    def _handle_change(self, sub: LedgerSubscription, records: list[TransactionRecord]) -> None:
        with self._lock:
            if not self._is_current(sub):
                return
            snapshot = recompute(records, self._clock())
            self._records = list(records)
            version = self._swap(snapshot)
            self._last_error = None

        logger.debug(
            "Ledger recomputed for owner=%s rows=%s balance=%s",
            sub.owner_id,
            len(snapshot.rows),
            snapshot.final_balance,
        )
        self._publish(snapshot, version)

    def _handle_error(self, sub: LedgerSubscription, err: Exception) -> None:
        with self._lock:
            if not self._is_current(sub):
                return
            if not isinstance(err, StoreError):
                err = StoreError(str(err))
            self._last_error = err

        logger.warning("Ledger sync error for owner=%s: %s", sub.owner_id, err)
        if self._on_error is not None:
            self._on_error(err)

    def refresh_today(self) -> LedgerSnapshot | None:
        """
        Rebuild the snapshot from the last delivered records with a fresh
        "today", so the fee total rolls over at midnight.
        """
        with self._lock:
            if self._subscription is None or self._records is None:
                return None
            snapshot = recompute(self._records, self._clock())
            version = self._swap(snapshot)

        self._publish(snapshot, version)
        return snapshot

    def _swap(self, snapshot: LedgerSnapshot) -> int:
        # caller holds self._lock
        self._version += 1
        self._snapshot = snapshot
        return self._version

    def _publish(self, snapshot: LedgerSnapshot, version: int) -> None:
        if self._on_snapshot is None:
            return
        with self._publish_lock:
            if version <= self._published_version:
                logger.debug("Dropping superseded snapshot version=%s", version)
                return
            self._published_version = version
            try:
                self._on_snapshot(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed")
