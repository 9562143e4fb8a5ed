"""
Risk metrics: drawdown, volatility and annualization.

Both drawdown and volatility sample total valuations at discrete dates and
use simple period-over-period changes; external flows are not neutralized
here (see ``twr.py`` for that).
"""

import math
from dataclasses import dataclass
from datetime import date

from perfolio.domain.models import PortfolioState
from perfolio.services.performance.twr import calculate_twr
from perfolio.services.valuation import calculate_valuation

TRADING_DAYS_PER_YEAR = 252
DAYS_PER_YEAR = 365.25


@dataclass(frozen=True)
class DrawdownResult:
    """Largest peak-to-trough decline (ratio) and longest drawdown (days)."""

    max_drawdown: float
    longest_drawdown_days: int


@dataclass(frozen=True)
class RiskSummary:
    """Risk figures for one window."""

    start: date
    end: date
    max_drawdown: float
    longest_drawdown_days: int
    volatility: float
    twr: float
    annualized_twr: float


def _price_dates(state: PortfolioState, start: date, end: date) -> set[date]:
    return {
        price.date
        for security in state.securities.values()
        for price in security.prices
        if start <= price.date <= end
    }


def calculate_max_drawdown(state: PortfolioState, start: date, end: date) -> DrawdownResult:
    """
    Scan valuations at every transaction date, price date and window bound.

    A drawdown starts at the first sample below the running peak and ends
    when a new peak is reached; one still open at ``end`` is measured up to
    ``end``.
    """
    dates = {tx.day for tx in state.all_transactions() if start <= tx.day <= end}
    dates |= _price_dates(state, start, end)
    dates.update((start, end))

    max_drawdown = 0.0
    peak = 0.0
    longest = 0
    drawdown_start = None

    for day in sorted(dates):
        value = float(calculate_valuation(state, day).total_value)

        if value > peak:
            peak = value
            if drawdown_start is not None:
                longest = max(longest, (day - drawdown_start).days)
                drawdown_start = None
        elif peak > 0:
            max_drawdown = max(max_drawdown, (peak - value) / peak)
            if drawdown_start is None:
                drawdown_start = day

    if drawdown_start is not None:
        longest = max(longest, (end - drawdown_start).days)

    return DrawdownResult(max_drawdown=max_drawdown, longest_drawdown_days=longest)


def calculate_volatility(state: PortfolioState, start: date, end: date) -> float:
    """
    Annualized volatility of simple returns between consecutive price dates.

    Uses the population standard deviation scaled by sqrt(252). Returns 0.0
    with fewer than two price dates in the window.
    """
    dates = sorted(_price_dates(state, start, end))
    if len(dates) < 2:
        return 0.0

    returns = []
    previous = float(calculate_valuation(state, dates[0]).total_value)
    for day in dates[1:]:
        value = float(calculate_valuation(state, day).total_value)
        if previous > 0:
            returns.append((value - previous) / previous)
        previous = value

    if not returns:
        return 0.0

    mean = sum(returns) / len(returns)
    variance = sum((r - mean) ** 2 for r in returns) / len(returns)
    return math.sqrt(variance) * math.sqrt(TRADING_DAYS_PER_YEAR)


def annualize_return(total_return: float, days: float) -> float:
    """(1 + r)^(365.25 / days) - 1; 0.0 for non-positive day counts."""
    if days <= 0:
        return 0.0
    if total_return <= -1:
        return -1.0
    return (1 + total_return) ** (DAYS_PER_YEAR / days) - 1


def calculate_risk_summary(state: PortfolioState, start: date, end: date) -> RiskSummary:
    drawdown = calculate_max_drawdown(state, start, end)
    twr = calculate_twr(state, start, end)
    return RiskSummary(
        start=start,
        end=end,
        max_drawdown=drawdown.max_drawdown,
        longest_drawdown_days=drawdown.longest_drawdown_days,
        volatility=calculate_volatility(state, start, end),
        twr=twr,
        annualized_twr=annualize_return(twr, (end - start).days),
    )
