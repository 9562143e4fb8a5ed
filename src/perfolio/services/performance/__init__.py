"""Performance metrics built on valuation: capital flow, TWR, IRR, risk, periodic returns."""

from perfolio.services.performance.capital_flow import CapitalFlowResult, calculate_capital_flow
from perfolio.services.performance.irr import calculate_irr, solve_irr
from perfolio.services.performance.periodic import (
    YearlyReturn,
    calculate_monthly_returns,
    calculate_yearly_returns,
)
from perfolio.services.performance.risk import (
    DrawdownResult,
    RiskSummary,
    annualize_return,
    calculate_max_drawdown,
    calculate_risk_summary,
    calculate_volatility,
)
from perfolio.services.performance.twr import calculate_twr

__all__ = [
    "CapitalFlowResult",
    "DrawdownResult",
    "RiskSummary",
    "YearlyReturn",
    "annualize_return",
    "calculate_capital_flow",
    "calculate_irr",
    "calculate_max_drawdown",
    "calculate_monthly_returns",
    "calculate_risk_summary",
    "calculate_twr",
    "calculate_volatility",
    "calculate_yearly_returns",
    "solve_irr",
]
