from __future__ import annotations

import sys

import pytest

from agent_cashbook import cli
from agent_cashbook.config import load_settings


@pytest.fixture
def cashbook_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CASHBOOK_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("CASHBOOK_OWNER_ID", "counter-01")
    monkeypatch.setattr(cli, "setup_logging", lambda level: None)
    load_settings.cache_clear()
    yield tmp_path / "data"
    load_settings.cache_clear()


def _run(monkeypatch, *args: str) -> int:
    monkeypatch.setattr(sys, "argv", ["agent-cashbook", *args])
    return cli.main()


def test_add_then_ledger_shows_balance(cashbook_env, monkeypatch, capsys):
    code = _run(
        monkeypatch,
        "add",
        "--date", "2024-05-10",
        "--time", "08:00",
        "--type", "Cash Deposit",
        "--amount", "500000",
        "--fee", "3000",
        "--reference", "TRX-001",
    )
    out = capsys.readouterr().out
    assert code == 0
    assert out.startswith("ok: Transaction saved")
    assert (cashbook_env / "tx" / "counter-01.jsonl").exists()

    assert _run(monkeypatch, "ledger") == 0
    out = capsys.readouterr().out
    assert "Cash Deposit" in out
    assert "TRX-001" in out
    assert "Cash balance: Rp 503.000" in out


def test_add_with_unknown_type_fails_without_writing(cashbook_env, monkeypatch, capsys):
    code = _run(monkeypatch, "add", "--date", "2024-05-10", "--time", "08:00", "--type", "Refund", "--amount", "10")

    assert code == 1
    assert "error: Transaction not saved" in capsys.readouterr().out
    assert not (cashbook_env / "tx" / "counter-01.jsonl").exists()


def test_summary_on_empty_ledger(cashbook_env, monkeypatch, capsys):
    assert _run(monkeypatch, "summary") == 0
    out = capsys.readouterr().out
    assert "Transactions: 0" in out
    assert "Cash balance: Rp 0" in out


def test_types_lists_kinds(cashbook_env, monkeypatch, capsys):
    assert _run(monkeypatch, "types") == 0
    assert "- Data Package Purchase" in capsys.readouterr().out
