"""Point-in-time valuation: direct replay and indexed fast path."""

from perfolio.services.valuation.holdings import calculate_holdings, cash_effect, share_effect
from perfolio.services.valuation.index import Timeline, ValuationIndex, calculate_valuation_fast
from perfolio.services.valuation.models import ValuationResult
from perfolio.services.valuation.service import calculate_valuation, implied_prices, price_at_date

__all__ = [
    "Timeline",
    "ValuationIndex",
    "ValuationResult",
    "calculate_holdings",
    "calculate_valuation",
    "calculate_valuation_fast",
    "cash_effect",
    "implied_prices",
    "price_at_date",
    "share_effect",
]
