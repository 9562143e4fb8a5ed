"""Valuation result types."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ValuationResult:
    """Portfolio value split into cash and securities, in base currency."""

    cash_balance: Decimal
    security_value: Decimal
    total_value: Decimal

    @classmethod
    def of(cls, cash_balance: Decimal, security_value: Decimal) -> "ValuationResult":
        return cls(
            cash_balance=cash_balance,
            security_value=security_value,
            total_value=cash_balance + security_value,
        )
