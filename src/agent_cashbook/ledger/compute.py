from __future__ import annotations

import math
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any, Iterable

from .classify import classify
from .models import DerivedLedgerRow, LedgerSnapshot, TransactionRecord


def _created_key(value: str) -> tuple[int, Any]:
    # parsed instants first, in UTC; unparseable text after them, as text
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return (1, value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (0, dt.astimezone(timezone.utc))


def _sort_key(r: TransactionRecord) -> tuple[str, str, tuple[int, Any], str]:
    # id only separates records whose date, time and createdAt all tie
    return (r.date, r.time, _created_key(r.created_at), r.id)


def _as_date(today: date | str) -> date | None:
    if isinstance(today, datetime):
        return today.date()
    if isinstance(today, date):
        return today
    try:
        return date.fromisoformat(str(today).strip())
    except ValueError:
        return None


def recompute(records: Iterable[TransactionRecord], today: date | str) -> LedgerSnapshot:
    """
    Build the full ledger from an unordered record set.

    Every record takes part in the running balance regardless of its date;
    only the fee total is restricted to records dated `today`.
    """
    ordered = sorted(records, key=_sort_key)
    today_d = _as_date(today)
    today_s = today_d.isoformat() if today_d is not None else str(today).strip()

    rows: list[DerivedLedgerRow] = []
    balance = 0.0
    for r in ordered:
        cash_in, cash_out = classify(r.type, r.amount, r.fee)
        balance += cash_in - cash_out
        rows.append(
            DerivedLedgerRow(
                record=r,
                cash_in=cash_in,
                cash_out=cash_out,
                running_balance=balance,
            )
        )

    today_fee_total = math.fsum(r.fee for r in ordered if r.date == today_s)

    return LedgerSnapshot(
        rows=tuple(rows),
        final_balance=balance,
        today_fee_total=today_fee_total,
        today=today_d,
    )


def compute_facts(snapshot: LedgerSnapshot) -> dict[str, Any]:
    rows = snapshot.rows
    today_s = snapshot.today.isoformat() if snapshot.today is not None else None

    cash_in_total = 0.0
    cash_out_total = 0.0
    today_count = 0

    by_type = defaultdict(lambda: {"count": 0, "amount": 0.0, "fee": 0.0, "net": 0.0})

    for row in rows:
        rec = row.record
        cash_in_total += row.cash_in
        cash_out_total += row.cash_out
        if today_s is not None and rec.date == today_s:
            today_count += 1

        bucket = by_type[rec.type or "(none)"]
        bucket["count"] += 1
        bucket["amount"] += rec.amount
        bucket["fee"] += rec.fee
        bucket["net"] += row.net

    return {
        "transactions_count": len(rows),
        "today": today_s,
        "today_transactions_count": today_count,
        "totals": {
            "cash_in": cash_in_total,
            "cash_out": cash_out_total,
            "final_balance": snapshot.final_balance,
            "today_fee_total": snapshot.today_fee_total,
        },
        "by_type": {k: dict(v) for k, v in sorted(by_type.items())},
    }
