"""
Money-weighted return (IRR).

Solves for ``irr`` in

    MVB * (1 + irr)^(RD / 365) + sum(CF_i * (1 + irr)^(RD_i / 365)) = MVE

with Newton-Raphson, where MVB and MVE are the total valuations at the
window bounds, RD is the number of days in the window and RD_i the days from
flow ``i`` to the end of the window. Flows are the external capital
movements dated after ``start`` and up to ``end``.
"""

from dataclasses import dataclass
from datetime import date

from perfolio.domain.models import PortfolioState
from perfolio.services.performance.capital_flow import iter_capital_flows
from perfolio.services.valuation import calculate_valuation

DAYS_PER_YEAR = 365
INITIAL_GUESS = 0.1
MIN_DERIVATIVE = 1e-10
MAX_ABS_RATE = 10.0


@dataclass(frozen=True)
class CashFlow:
    """External flow: positive into the portfolio, negative out of it."""

    day: date
    amount: float


def solve_irr(
    mvb: float,
    mve: float,
    reporting_days: int,
    flows: list[tuple[int, float]],
    max_iterations: int = 100,
    tolerance: float = 1e-7,
) -> float:
    """
    Newton-Raphson solver.

    Args:
        mvb: Market value at the beginning of the window
        mve: Market value at the end of the window
        reporting_days: Days in the window
        flows: ``(remaining_days, amount)`` per flow
        max_iterations: Iteration cap
        tolerance: Convergence threshold on successive estimates

    Returns:
        The converged rate, or the last estimate when the iteration is
        aborted (flat derivative, rate beyond +-1000%, or a rate at or below
        -100% where the growth factor is undefined)
    """
    terms = [(mvb, reporting_days / DAYS_PER_YEAR)] + [
        (amount, days / DAYS_PER_YEAR) for days, amount in flows
    ]

    irr = INITIAL_GUESS
    for _ in range(max_iterations):
        growth = 1 + irr
        if growth <= 0:
            break

        f = sum(amount * growth**years for amount, years in terms) - mve
        df = sum(amount * years * growth ** (years - 1) for amount, years in terms)

        if abs(df) < MIN_DERIVATIVE:
            break

        new_irr = irr - f / df
        if abs(new_irr - irr) < tolerance:
            return new_irr

        irr = new_irr
        if abs(irr) > MAX_ABS_RATE:
            break

    return irr


def collect_cash_flows(state: PortfolioState, start: date, end: date) -> list[CashFlow]:
    """External flows dated after ``start`` and on or before ``end``."""
    return [
        CashFlow(day=day, amount=float(amount))
        for day, amount in iter_capital_flows(state, start, end, include_start=False)
    ]


def calculate_irr(
    state: PortfolioState,
    start: date,
    end: date,
    max_iterations: int = 100,
    tolerance: float = 1e-7,
) -> float:
    """
    Money-weighted return over ``[start, end]``.

    Example:
        >>> irr = calculate_irr(state, date(2020, 6, 12), date(2023, 6, 12))  # deposit only
        >>> abs(irr) < 1e-2
        True
    """
    mvb = float(calculate_valuation(state, start).total_value)
    mve = float(calculate_valuation(state, end).total_value)

    flows = [((end - flow.day).days, flow.amount) for flow in collect_cash_flows(state, start, end)]

    return solve_irr(
        mvb,
        mve,
        abs((end - start).days),
        flows,
        max_iterations=max_iterations,
        tolerance=tolerance,
    )
