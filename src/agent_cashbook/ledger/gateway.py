from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as DraftParseError

from ..core.clock import BusinessClock
from ..errors import LedgerError, MissingOwnerError, StoreError, ValidationError
from .classify import is_known_type
from .models import TX_TYPES, to_amount

if TYPE_CHECKING:
    from ..storage.tx_store import RecordStore

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class TransactionDraft(BaseModel):
    """What the user typed into the form. Nothing here is trusted yet."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    date: Optional[str] = None
    time: Optional[str] = None
    type: Optional[str] = None
    reference: Optional[str] = None
    amount: float = 0.0
    fee: float = 0.0
    description: Optional[str] = None

    @field_validator("amount", "fee", mode="before")
    @classmethod
    def _coerce_amount(cls, v: Any) -> float:
        return to_amount(v)

    @field_validator("date", "time", "type", "reference", "description", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if v is None:
            return None
        s = str(v).strip()
        return s or None


@dataclass(frozen=True)
class SubmitResult:
    ok: bool
    record_id: str | None = None
    error: LedgerError | None = None


def _valid_date(value: str) -> bool:
    if not _DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def validate_draft(draft: TransactionDraft) -> None:
    missing = [name for name in ("date", "time", "type") if not getattr(draft, name)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

    bad: list[str] = []
    if not _valid_date(draft.date or ""):
        bad.append("date")
    if not _TIME_RE.match(draft.time or ""):
        bad.append("time")
    if bad:
        raise ValidationError(f"Malformed fields: {', '.join(bad)}", fields=bad)

    if not is_known_type(draft.type):
        raise ValidationError(
            f"Unknown transaction type {draft.type!r}; expected one of: {', '.join(TX_TYPES)}",
            fields=["type"],
        )


class LedgerGateway:
    """
    Writes new transactions to the store. It never touches the derived
    ledger; the sync adapter picks the new record up from the next
    store notification.
    """

    def __init__(
        self,
        store: RecordStore,
        owner_provider: Callable[[], str | None],
        *,
        clock: BusinessClock | None = None,
    ):
        self._store = store
        self._owner_provider = owner_provider
        self._clock = clock or BusinessClock()

    def submit(self, draft: TransactionDraft | dict[str, Any]) -> SubmitResult:
        owner_id = self._owner_provider()
        if not owner_id:
            return SubmitResult(ok=False, error=MissingOwnerError("Owner identity is not established yet"))

        try:
            parsed = draft if isinstance(draft, TransactionDraft) else TransactionDraft.model_validate(draft)
            validate_draft(parsed)
        except DraftParseError as e:
            logger.info("Unreadable draft for owner=%s: %s", owner_id, e)
            return SubmitResult(ok=False, error=ValidationError("Draft could not be read"))
        except ValidationError as e:
            logger.info("Transaction rejected for owner=%s: %s", owner_id, e)
            return SubmitResult(ok=False, error=e)

        record: dict[str, Any] = {
            "date": parsed.date,
            "time": parsed.time,
            "type": parsed.type,
            "amount": parsed.amount,
            "fee": parsed.fee,
            "createdAt": self._clock.timestamp(),
        }
        if parsed.reference is not None:
            record["reference"] = parsed.reference
        if parsed.description is not None:
            record["description"] = parsed.description

        try:
            record_id = self._store.insert(owner_id, record)
        except StoreError as e:
            logger.warning("Store rejected transaction for owner=%s: %s", owner_id, e)
            return SubmitResult(ok=False, error=e)

        logger.info("Transaction %s recorded for owner=%s (%s)", record_id, owner_id, parsed.type)
        return SubmitResult(ok=True, record_id=record_id)
