from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class Identity:
    owner_id: str
    created_at: float  # unix timestamp


class IdentityStore:
    """
    Anonymous owner identity for this installation.
    Stored under .cache/identity.json and created on first use.
    """

    def __init__(self, root_dir: Path | None = None):
        self.root_dir = root_dir or Path(".cache")
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def _path(self) -> Path:
        return self.root_dir / "identity.json"

    def load_raw(self) -> dict[str, Any]:
        path = self._path()
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> Identity | None:
        data = self.load_raw()
        owner_id = str(data.get("owner_id") or "").strip()
        if not owner_id:
            return None
        try:
            created_at = float(data.get("created_at", 0.0))
        except (TypeError, ValueError):
            created_at = 0.0
        return Identity(owner_id=owner_id, created_at=created_at)

    def save(self, owner_id: str) -> Path:
        payload = {"owner_id": owner_id, "created_at": time.time()}
        path = self._path()
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(path)
        return path

    def get_or_create(self) -> Identity:
        existing = self.load()
        if existing is not None:
            return existing
        owner_id = uuid.uuid4().hex
        self.save(owner_id)
        return self.load() or Identity(owner_id=owner_id, created_at=time.time())
