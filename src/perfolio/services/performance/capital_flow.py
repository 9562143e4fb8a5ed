"""
Capital flow accounting.

External capital movements are the only flows that change how much money
the owner has put into the portfolio:

- in: DEPOSIT, DELIVERY_INBOUND
- out: REMOVAL, WITHDRAWAL, DELIVERY_OUTBOUND

Buys, sells, dividends, fees and taxes are internal and never count.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from perfolio.domain.models import CAPITAL_INFLOW_TYPES, CAPITAL_OUTFLOW_TYPES, PortfolioState, Transaction

ZERO = Decimal("0")


@dataclass(frozen=True)
class CapitalFlowResult:
    """Capital moved in and out of the portfolio within a window."""

    deposited: Decimal
    withdrawn: Decimal
    net_invested: Decimal


def capital_flow_sign(tx: Transaction) -> int:
    """+1 for capital inflows, -1 for outflows, 0 for everything else."""
    kind = tx.kind
    if kind in CAPITAL_INFLOW_TYPES:
        return 1
    if kind in CAPITAL_OUTFLOW_TYPES:
        return -1
    return 0


def iter_capital_flows(
    state: PortfolioState, start: date, end: date, include_start: bool = True
) -> Iterator[tuple[date, Decimal]]:
    """
    Yield ``(day, signed amount)`` for each external flow in the window.

    Args:
        state: Ingested portfolio state
        start: First day of the window
        end: Last day of the window, inclusive
        include_start: Whether flows dated on ``start`` are part of the window
    """
    for tx in state.all_transactions():
        day = tx.day
        if day > end or day < start or (day == start and not include_start):
            continue
        sign = capital_flow_sign(tx)
        if sign:
            yield day, tx.amount if sign > 0 else -tx.amount


def calculate_capital_flow(state: PortfolioState, start: date, end: date) -> CapitalFlowResult:
    """
    Sum capital in and out for transactions dated within ``[start, end]``.

    Example:
        >>> flow = calculate_capital_flow(state, date(2026, 1, 1), date(2026, 1, 10))
        >>> flow.net_invested == flow.deposited - flow.withdrawn
        True
    """
    deposited = ZERO
    withdrawn = ZERO
    for _, amount in iter_capital_flows(state, start, end):
        if amount >= 0:
            deposited += amount
        else:
            withdrawn -= amount

    return CapitalFlowResult(deposited=deposited, withdrawn=withdrawn, net_invested=deposited - withdrawn)
