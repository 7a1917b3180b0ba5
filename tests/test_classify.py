from __future__ import annotations

import logging

import pytest

from agent_cashbook.ledger.classify import classify, is_known_type
from agent_cashbook.ledger.models import TX_TYPES


def test_cash_deposit_moves_amount_plus_fee_in():
    assert classify("Cash Deposit", 500000, 3000) == (503000, 0)


def test_cash_withdrawal_moves_amount_plus_fee_out():
    assert classify("Cash Withdrawal", 200000, 2000) == (0, 202000)


@pytest.mark.parametrize(
    "tx_type",
    ["Transfer", "PLN Payment", "PDAM Payment", "BPJS Payment", "Airtime Purchase", "Data Package Purchase"],
)
def test_agent_services_only_keep_the_fee(tx_type):
    assert classify(tx_type, 1000000, 5000) == (5000, 0)


def test_operating_expense_ignores_fee():
    assert classify("Operating Expense", 50000, 1000) == (0, 50000)


def test_unknown_type_is_inert_and_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="agent_cashbook.ledger.classify"):
        assert classify("Lottery Ticket", 100, 10) == (0, 0)
    assert "Lottery Ticket" in caplog.text


def test_missing_type_is_inert():
    assert classify(None, 100, 10) == (0, 0)
    assert classify("", 100, 10) == (0, 0)


def test_bad_numbers_become_zero():
    assert classify("Cash Deposit", "abc", None) == (0, 0)
    assert classify("Cash Deposit", "", "2500") == (2500, 0)
    assert classify("Cash Withdrawal", float("nan"), -5) == (0, 0)


def test_cash_in_and_out_never_both_nonzero():
    for tx_type in TX_TYPES + ("Something Else",):
        cash_in, cash_out = classify(tx_type, 12345, 678)
        assert cash_in == 0 or cash_out == 0


def test_is_known_type():
    assert is_known_type("Cash Deposit")
    assert is_known_type("  Transfer ")
    assert not is_known_type("cash deposit")
    assert not is_known_type(None)
