"""
Periodic returns: monthly TWR per calendar year and yearly TWR.

Each period is an independent TWR call. A failing period degrades to 0.0 and
is logged instead of failing the whole series.
"""

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Optional

from perfolio.domain.models import PortfolioState
from perfolio.services.performance.twr import calculate_twr
from perfolio.system import LoggerFactory

logger = LoggerFactory.get_logger(__name__)

# First-transaction months after June skip that year
LAST_MONTH_OF_FIRST_HALF = 6


@dataclass(frozen=True)
class YearlyReturn:
    year: int
    value: float


def _safe_twr(state: PortfolioState, start: date, end: date) -> float:
    try:
        return calculate_twr(state, start, end)
    except (ArithmeticError, ValueError) as exc:
        logger.warning("periodic_returns.period_failed", start=start.isoformat(), end=end.isoformat(), error=str(exc))
        return 0.0


def calculate_monthly_returns(state: PortfolioState, year: int) -> list[float]:
    """
    TWR of each calendar month of ``year``.

    Returns:
        Twelve values, January first
    """
    returns = []
    for month in range(1, 13):
        last_day = calendar.monthrange(year, month)[1]
        returns.append(_safe_twr(state, date(year, month, 1), date(year, month, last_day)))
    return returns


def first_reported_year(first_transaction: date) -> int:
    """First year of the yearly series; skipped when its first transaction is after June."""
    if first_transaction.month > LAST_MONTH_OF_FIRST_HALF:
        return first_transaction.year + 1
    return first_transaction.year


def calculate_yearly_returns(state: PortfolioState, today: Optional[date] = None) -> list[YearlyReturn]:
    """
    TWR of each calendar year from the first reported year through the current year.

    Args:
        state: Ingested portfolio state
        today: Reference date for "current year" (defaults to today)
    """
    today = today or date.today()
    first_transaction = state.first_transaction_date() or today

    return [
        YearlyReturn(year=year, value=_safe_twr(state, date(year, 1, 1), date(year, 12, 31)))
        for year in range(first_reported_year(first_transaction), today.year + 1)
    ]
