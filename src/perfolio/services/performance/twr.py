"""
Time-weighted return.

Day-by-day chain-linking with per-day neutralization of external flows:

    delta(d)      = (V(d) + outbound(d)) / (V(d-1) + inbound(d)) - 1
    accumulated   = (accumulated + 1) * (delta(d) + 1) - 1

for every calendar day ``d`` from ``start + 1`` to ``end``. Days whose
denominator is not positive contribute no change. Inbound flows are
DEPOSIT and DELIVERY_INBOUND; outbound flows are REMOVAL, WITHDRAWAL and
DELIVERY_OUTBOUND.
"""

from collections import defaultdict
from datetime import date, timedelta

from perfolio.domain.models import PortfolioState
from perfolio.services.performance.capital_flow import iter_capital_flows
from perfolio.services.valuation import calculate_valuation


def calculate_twr(state: PortfolioState, start: date, end: date) -> float:
    """
    Time-weighted return over ``[start, end]``.

    Args:
        state: Ingested portfolio state
        start: First day of the window (valuation base)
        end: Last day of the window, inclusive

    Returns:
        Cumulative return as a ratio (0.155 means +15.5%); 0.0 when
        ``end <= start``
    """
    inbound: dict[date, float] = defaultdict(float)
    outbound: dict[date, float] = defaultdict(float)
    for day, amount in iter_capital_flows(state, start, end):
        if amount >= 0:
            inbound[day] += float(amount)
        else:
            outbound[day] -= float(amount)

    valuation = float(calculate_valuation(state, start).total_value)
    accumulated = 0.0

    day = start + timedelta(days=1)
    while day <= end:
        this_valuation = float(calculate_valuation(state, day).total_value)

        denominator = valuation + inbound.get(day, 0.0)
        delta = 0.0
        if denominator > 0:
            delta = (this_valuation + outbound.get(day, 0.0)) / denominator - 1

        accumulated = (accumulated + 1) * (delta + 1) - 1

        valuation = this_valuation
        day += timedelta(days=1)

    return accumulated
