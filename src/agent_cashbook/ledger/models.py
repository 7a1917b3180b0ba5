from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Any

CASH_DEPOSIT = "Cash Deposit"
CASH_WITHDRAWAL = "Cash Withdrawal"
TRANSFER = "Transfer"
PLN_PAYMENT = "PLN Payment"
PDAM_PAYMENT = "PDAM Payment"
BPJS_PAYMENT = "BPJS Payment"
AIRTIME_PURCHASE = "Airtime Purchase"
DATA_PACKAGE_PURCHASE = "Data Package Purchase"
OPERATING_EXPENSE = "Operating Expense"

# Agent-mediated services: only the fee passes through the cash drawer
FEE_ONLY_TYPES = frozenset(
    {
        TRANSFER,
        PLN_PAYMENT,
        PDAM_PAYMENT,
        BPJS_PAYMENT,
        AIRTIME_PURCHASE,
        DATA_PACKAGE_PURCHASE,
    }
)

TX_TYPES: tuple[str, ...] = (
    CASH_DEPOSIT,
    CASH_WITHDRAWAL,
    TRANSFER,
    PLN_PAYMENT,
    PDAM_PAYMENT,
    BPJS_PAYMENT,
    AIRTIME_PURCHASE,
    DATA_PACKAGE_PURCHASE,
    OPERATING_EXPENSE,
)


def to_amount(value: Any) -> float:
    """
    Coerce a stored or typed-in amount to a non-negative float.
    Anything absent, non-numeric, non-finite or negative becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(num) or num < 0:
        return 0.0
    return num


def _opt_text(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    type: str
    amount: float
    fee: float
    created_at: str  # ISO-8601 timestamp
    reference: str | None = None
    description: str | None = None

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "TransactionRecord":
        return cls(
            id=str(obj.get("id") or ""),
            date=str(obj.get("date") or "").strip(),
            time=str(obj.get("time") or "").strip(),
            type=str(obj.get("type") or "").strip(),
            amount=to_amount(obj.get("amount")),
            fee=to_amount(obj.get("fee")),
            created_at=str(obj.get("createdAt") or "").strip(),
            reference=_opt_text(obj.get("reference")),
            description=_opt_text(obj.get("description")),
        )


@dataclass(frozen=True)
class DerivedLedgerRow:
    record: TransactionRecord
    cash_in: float
    cash_out: float
    running_balance: float

    @property
    def net(self) -> float:
        return self.cash_in - self.cash_out


@dataclass(frozen=True)
class LedgerSnapshot:
    rows: tuple[DerivedLedgerRow, ...]
    final_balance: float
    today_fee_total: float
    today: date | None = None

    @classmethod
    def empty(cls, today: date | None = None) -> "LedgerSnapshot":
        return cls(rows=(), final_balance=0.0, today_fee_total=0.0, today=today)
