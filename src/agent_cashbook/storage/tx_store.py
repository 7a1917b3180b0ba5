from __future__ import annotations

import json
import logging
import re
import threading
import uuid
from pathlib import Path
from typing import Any, Callable, Protocol

from ..errors import StoreError
from ..ledger.models import TransactionRecord

logger = logging.getLogger(__name__)

OnChange = Callable[[list[TransactionRecord]], None]
OnError = Callable[[Exception], None]

_OWNER_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class CancelHandle(Protocol):
    def cancel(self) -> None: ...


class RecordStore(Protocol):
    def subscribe(self, owner_id: str, on_change: OnChange, on_error: OnError) -> CancelHandle: ...

    def insert(self, owner_id: str, record: dict[str, Any]) -> str: ...


class StoreSubscription:
    def __init__(self, store: "TxStore", owner_id: str, on_change: OnChange, on_error: OnError):
        self._store = store
        self.owner_id = owner_id
        self.on_change = on_change
        self.on_error = on_error
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._store._remove(self)


class TxStore:
    """
    Per-owner transaction log stored as JSONL:

      .cache/tx/<owner_id>.jsonl

    Each line is one transaction record. Records are only ever appended.
    Subscribers receive the full record set of their owner on subscribe,
    after every insert, and when poll() sees the file changed on disk.
    """

    def __init__(self, root_dir: Path | None = None):
        self.root_dir = root_dir or (Path(".cache") / "tx")
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._subs: dict[str, list[StoreSubscription]] = {}
        self._seen: dict[str, tuple[int, int] | None] = {}
        self._delivery_locks: dict[str, threading.RLock] = {}

    def _path(self, owner_id: str) -> Path:
        if not isinstance(owner_id, str) or not _OWNER_ID_RE.match(owner_id):
            raise StoreError(f"Invalid owner id: {owner_id!r}")
        return self.root_dir / f"{owner_id}.jsonl"

    def _fingerprint(self, owner_id: str) -> tuple[int, int] | None:
        try:
            st = self._path(owner_id).stat()
        except FileNotFoundError:
            return None
        return st.st_mtime_ns, st.st_size

    def load_all(self, owner_id: str) -> list[TransactionRecord]:
        path = self._path(owner_id)
        if not path.exists():
            return []
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Failed to read ledger for owner {owner_id}: {e}") from e

        rows: list[TransactionRecord] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping malformed line %s in %s", lineno, path)
                continue
            if not isinstance(obj, dict):
                logger.warning("Skipping non-object line %s in %s", lineno, path)
                continue
            rows.append(TransactionRecord.from_dict(obj))
        return rows

    def insert(self, owner_id: str, record: dict[str, Any]) -> str:
        """
        Append one record with a store-assigned id. Returns the id.
        """
        path = self._path(owner_id)
        record_id = uuid.uuid4().hex
        payload = dict(record)
        payload["id"] = record_id

        with self._lock:
            try:
                with path.open("a", encoding="utf-8") as f:
                    f.write(json.dumps(payload, ensure_ascii=False) + "\n")
            except (OSError, TypeError, ValueError) as e:
                raise StoreError(f"Failed to write record for owner {owner_id}: {e}") from e

        self._notify(owner_id)
        return record_id

    def subscribe(self, owner_id: str, on_change: OnChange, on_error: OnError) -> StoreSubscription:
        sub = StoreSubscription(self, owner_id, on_change, on_error)
        with self._lock:
            self._subs.setdefault(owner_id, []).append(sub)
        logger.debug("Store subscription added for owner=%s", owner_id)
        self._deliver([sub], owner_id)
        return sub

    def _remove(self, sub: StoreSubscription) -> None:
        with self._lock:
            subs = self._subs.get(sub.owner_id, [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._subs.pop(sub.owner_id, None)
                self._seen.pop(sub.owner_id, None)
        logger.debug("Store subscription removed for owner=%s", sub.owner_id)

    def subscriber_count(self, owner_id: str) -> int:
        with self._lock:
            return len(self._subs.get(owner_id, []))

    def poll(self) -> int:
        """
        Re-notify owners whose file was changed by another writer.
        Returns the number of owners notified.
        """
        with self._lock:
            owners = list(self._subs.keys())

        notified = 0
        for owner_id in owners:
            try:
                fp = self._fingerprint(owner_id)
            except (StoreError, OSError):
                continue
            with self._lock:
                changed = self._seen.get(owner_id) != fp
            if changed:
                self._notify(owner_id)
                notified += 1
        return notified

    def _notify(self, owner_id: str) -> None:
        with self._lock:
            subs = list(self._subs.get(owner_id, []))
        if subs:
            self._deliver(subs, owner_id)

    def _owner_lock(self, owner_id: str) -> threading.RLock:
        with self._lock:
            lock = self._delivery_locks.get(owner_id)
            if lock is None:
                lock = self._delivery_locks[owner_id] = threading.RLock()
            return lock

    def _deliver(self, subs: list[StoreSubscription], owner_id: str) -> None:
        # deliveries for one owner never interleave: read and callbacks share one lock
        with self._owner_lock(owner_id):
            try:
                with self._lock:
                    fp = self._fingerprint(owner_id)
                    records = self.load_all(owner_id)
                    self._seen[owner_id] = fp
            except (StoreError, OSError) as e:
                err = e if isinstance(e, StoreError) else StoreError(str(e))
                logger.warning("Store read failed for owner=%s: %s", owner_id, err)
                for sub in subs:
                    if sub.active:
                        self._call(sub.on_error, err, owner_id)
                return

            for sub in subs:
                if sub.active:
                    self._call(sub.on_change, list(records), owner_id)

    @staticmethod
    def _call(fn: Callable[[Any], None], arg: Any, owner_id: str) -> None:
        try:
            fn(arg)
        except Exception:
            logger.exception("Subscriber callback failed for owner=%s", owner_id)
