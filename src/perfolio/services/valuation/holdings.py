"""Share holdings replay and per-type cash/share effects."""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from perfolio.domain.models import (
    CASH_INFLOW_TYPES,
    CASH_OUTFLOW_TYPES,
    SHARE_INFLOW_TYPES,
    SHARE_OUTFLOW_TYPES,
    Transaction,
)

ZERO = Decimal("0")


def cash_effect(tx: Transaction) -> Decimal:
    """
    Signed cash effect of a transaction.

    Deliveries and unknown types have no cash effect.
    """
    kind = tx.kind
    if kind in CASH_INFLOW_TYPES:
        return tx.amount
    if kind in CASH_OUTFLOW_TYPES:
        return -tx.amount
    return ZERO


def share_effect(tx: Transaction) -> Decimal:
    """Signed share change of a transaction (zero when no security or shares)."""
    if not tx.security_uuid or not tx.shares:
        return ZERO
    kind = tx.kind
    if kind in SHARE_INFLOW_TYPES:
        return tx.shares
    if kind in SHARE_OUTFLOW_TYPES:
        return -tx.shares
    return ZERO


def calculate_holdings(transactions: Iterable[Transaction], day: date) -> dict[str, Decimal]:
    """
    Shares held per security at the end of ``day``.

    Args:
        transactions: Transactions to replay (any order)
        day: Target date, inclusive

    Returns:
        Security UUID -> net shares; securities netting to exactly zero are dropped
    """
    holdings: dict[str, Decimal] = {}
    for tx in sorted(transactions, key=lambda t: t.date):
        if tx.day > day:
            continue
        delta = share_effect(tx)
        if delta:
            holdings[tx.security_uuid] = holdings.get(tx.security_uuid, ZERO) + delta

    return {security_uuid: shares for security_uuid, shares in holdings.items() if shares != 0}
