from __future__ import annotations

import logging
from typing import Any

from .models import (
    CASH_DEPOSIT,
    CASH_WITHDRAWAL,
    FEE_ONLY_TYPES,
    OPERATING_EXPENSE,
    TX_TYPES,
    to_amount,
)

logger = logging.getLogger(__name__)


def is_known_type(tx_type: str | None) -> bool:
    return (tx_type or "").strip() in TX_TYPES


def classify(tx_type: str | None, amount: Any, fee: Any) -> tuple[float, float]:
    """
    Effect of one transaction on the agent's own cash drawer: (cash_in, cash_out).

    Deposits and withdrawals move principal + fee through the drawer.
    Transfers, bill payments and airtime/data purchases only leave the fee behind.
    Operating expenses take out the amount. Unknown types contribute nothing.
    """
    kind = (tx_type or "").strip()
    amt = to_amount(amount)
    fee_amt = to_amount(fee)

    if kind == CASH_DEPOSIT:
        return amt + fee_amt, 0.0
    if kind == CASH_WITHDRAWAL:
        return 0.0, amt + fee_amt
    if kind in FEE_ONLY_TYPES:
        return fee_amt, 0.0
    if kind == OPERATING_EXPENSE:
        return 0.0, amt

    logger.warning("Unrecognized transaction type %r, counted as zero cash flow", tx_type)
    return 0.0, 0.0
