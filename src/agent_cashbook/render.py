from __future__ import annotations

from typing import Any, Iterable

from .errors import LedgerError, MissingOwnerError, StoreError, ValidationError
from .ledger.gateway import SubmitResult
from .ledger.models import TX_TYPES, LedgerSnapshot


def heading(title: str) -> str:
    return f"{title}\n{'=' * len(title)}"


def section(title: str, lines: Iterable[str]) -> str:
    body = [f"  {ln}" for line in lines if line for ln in line.splitlines()]
    return "\n".join([heading(title), *body])


_LABELS = {"info": "note", "success": "ok", "warning": "warning", "error": "error"}


def notice(kind: str, message: str) -> str:
    """One-line status message, prefixed the way command-line tools do (`error: ...`)."""
    return f"{_LABELS.get(kind, kind)}: {message}"


def divider(width: int = 40) -> str:
    return "-" * width


def bullets(items: Iterable[str], *, prefix: str = "- ") -> str:
    return "\n".join(prefix + x for x in items if x)


def fmt_money(v: float) -> str:
    # Rupiah: no minor units, dot as thousands separator
    sign = "-" if v < 0 else ""
    return f"{sign}Rp {abs(v):,.0f}".replace(",", ".")


def _cell(v: float) -> str:
    return fmt_money(v) if v else "-"


def _clip(s: str | None, width: int) -> str:
    s = (s or "").replace("\n", " ").strip()
    if len(s) > width:
        return s[: width - 3] + "..."
    return s


def render_snapshot(snapshot: LedgerSnapshot, *, limit: int | None = None) -> str:
    if not snapshot.rows:
        return notice("info", "No transactions recorded yet.")

    rows = snapshot.rows if limit is None else snapshot.rows[-limit:]

    header = f"{'Date':<10} {'Time':<5} {'Type':<22} {'Ref':<12} {'Cash in':>15} {'Cash out':>15} {'Balance':>16}"
    lines: list[str] = [header, "-" * len(header)]
    for row in rows:
        r = row.record
        lines.append(
            f"{r.date:<10} {r.time:<5} {_clip(r.type, 22):<22} {_clip(r.reference, 12):<12} "
            f"{_cell(row.cash_in):>15} {_cell(row.cash_out):>15} {fmt_money(row.running_balance):>16}"
        )

    if limit is not None and len(snapshot.rows) > limit:
        lines.append(f"... {len(snapshot.rows) - limit} earlier transactions not shown")

    lines.append("")
    lines.append(render_totals(snapshot))
    return "\n".join(lines)


def render_totals(snapshot: LedgerSnapshot) -> str:
    today = snapshot.today.isoformat() if snapshot.today is not None else "today"
    return "\n".join(
        [
            f"Cash balance: {fmt_money(snapshot.final_balance)}",
            f"Fees collected {today}: {fmt_money(snapshot.today_fee_total)}",
        ]
    )


def render_summary(facts: dict[str, Any]) -> str:
    totals = facts.get("totals", {})
    parts: list[str] = []
    parts.append(
        section(
            "Summary",
            [
                f"Transactions: {facts.get('transactions_count', 0)}",
                f"Cash in: {fmt_money(totals.get('cash_in', 0.0))}",
                f"Cash out: {fmt_money(totals.get('cash_out', 0.0))}",
                f"Cash balance: {fmt_money(totals.get('final_balance', 0.0))}",
            ],
        )
    )

    today = facts.get("today")
    if today:
        parts.append(
            section(
                f"Today ({today})",
                [
                    f"Transactions: {facts.get('today_transactions_count', 0)}",
                    f"Fees collected: {fmt_money(totals.get('today_fee_total', 0.0))}",
                ],
            )
        )

    by_type = facts.get("by_type") or {}
    if by_type:
        items = [
            f"{name}: {v['count']} tx, amount {fmt_money(v['amount'])}, fee {fmt_money(v['fee'])}, "
            f"net {fmt_money(v['net'])}"
            for name, v in by_type.items()
        ]
        parts.append(section("By type", [bullets(items)]))

    return f"\n\n{divider()}\n\n".join(parts)


def render_types() -> str:
    return section("Transaction types", [bullets(TX_TYPES)])


def error_message(err: LedgerError | None) -> str:
    if isinstance(err, MissingOwnerError):
        return notice("error", "No owner identity yet. Run `agent-cashbook whoami` or set CASHBOOK_OWNER_ID.")
    if isinstance(err, ValidationError):
        return notice("error", f"Transaction not saved: {err}")
    if isinstance(err, StoreError):
        return notice("error", f"Storage problem, nothing was saved: {err}")
    if err is not None:
        return notice("error", str(err))
    return notice("error", "Unknown error")


def render_submit_result(result: SubmitResult) -> str:
    if result.ok:
        return notice("success", f"Transaction saved (id {result.record_id}).")
    return error_message(result.error)


def sync_error_message(err: Exception) -> str:
    return notice("warning", f"Ledger may be out of date: {err}")
