"""
Valuation Index.

Date-sorted cumulative timelines built once per PortfolioState so that a
point valuation costs a handful of binary searches instead of a full
transaction replay:

- cash timeline: cumulative cash balance, one entry per transaction day
- holdings timelines: cumulative shares per security, one entry per day
- price index: each security's price series

Build is O(T log T); a query is O(log T + S log P).

The indexed path does not fall back to implied prices: a holding without a
market price on or before the query date contributes zero. It agrees with
``calculate_valuation`` whenever every held security has a market price.
"""

import time
from bisect import bisect_right
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from perfolio.domain.models import PortfolioState, Security
from perfolio.services.valuation.holdings import ZERO, cash_effect, share_effect
from perfolio.services.valuation.models import ValuationResult
from perfolio.system import LoggerFactory

logger = LoggerFactory.get_logger(__name__)


@dataclass
class Timeline:
    """Step function over dates: value of the last entry on or before a date."""

    dates: list[date] = field(default_factory=list)
    values: list[Decimal] = field(default_factory=list)

    def record(self, day: date, value: Decimal) -> None:
        """Append an entry, collapsing entries of the same day into the last one."""
        if self.dates and self.dates[-1] == day:
            self.values[-1] = value
        else:
            self.dates.append(day)
            self.values.append(value)

    def at(self, day: date) -> Optional[Decimal]:
        position = bisect_right(self.dates, day)
        if position == 0:
            return None
        return self.values[position - 1]

    def __len__(self) -> int:
        return len(self.dates)


@dataclass
class ValuationIndex:
    """
    Precomputed timelines for fast point valuation.

    Attributes:
        cash_timeline: Cumulative cash balance per transaction day
        holdings_timeline: Security UUID -> cumulative shares per day
        price_index: Security UUID -> price per date
        first_date: Date of the earliest transaction (None without transactions)
        last_date: Date of the latest transaction
    """

    cash_timeline: Timeline
    holdings_timeline: dict[str, Timeline]
    price_index: dict[str, Timeline]
    first_date: Optional[date] = None
    last_date: Optional[date] = None

    @classmethod
    def build(cls, state: PortfolioState) -> "ValuationIndex":
        """
        Build the index for a PortfolioState.

        Args:
            state: Ingested portfolio state

        Returns:
            ValuationIndex covering every transaction and price of the state
        """
        started = time.perf_counter()
        transactions = sorted(state.all_transactions(), key=lambda tx: tx.date)

        cash_timeline = Timeline()
        cash = ZERO
        for tx in transactions:
            cash += cash_effect(tx)
            cash_timeline.record(tx.day, cash)

        holdings_timeline: dict[str, Timeline] = {}
        cumulative: dict[str, Decimal] = {}
        for tx in transactions:
            if not tx.security_uuid or not tx.shares:
                continue
            shares = cumulative.get(tx.security_uuid, ZERO) + share_effect(tx)
            cumulative[tx.security_uuid] = shares
            holdings_timeline.setdefault(tx.security_uuid, Timeline()).record(tx.day, shares)

        price_index = {
            security_uuid: Timeline(
                dates=[price.date for price in security.prices],
                values=[price.value for price in security.prices],
            )
            for security_uuid, security in state.securities.items()
        }

        index = cls(
            cash_timeline=cash_timeline,
            holdings_timeline=holdings_timeline,
            price_index=price_index,
            first_date=transactions[0].day if transactions else None,
            last_date=transactions[-1].day if transactions else None,
        )

        logger.info(
            "valuation_index.built",
            transactions=len(transactions),
            cash_points=len(cash_timeline),
            securities=len(holdings_timeline),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return index

    def holdings_at(self, day: date) -> dict[str, Decimal]:
        """Non-zero holdings at the end of ``day``."""
        holdings = {}
        for security_uuid, timeline in self.holdings_timeline.items():
            shares = timeline.at(day)
            if shares:
                holdings[security_uuid] = shares
        return holdings


def calculate_valuation_fast(
    index: ValuationIndex, day: date, securities: Mapping[str, Security]
) -> ValuationResult:
    """
    Value the portfolio at the end of ``day`` using the index.

    Args:
        index: Index built from the same state as ``securities``
        day: Valuation date
        securities: Security by UUID; holdings of unknown securities are skipped

    Returns:
        ValuationResult with cash, securities and total value
    """
    cash_balance = index.cash_timeline.at(day)
    if cash_balance is None:
        cash_balance = ZERO

    security_value = ZERO
    for security_uuid, shares in index.holdings_at(day).items():
        if security_uuid not in securities:
            continue

        prices = index.price_index.get(security_uuid)
        price = prices.at(day) if prices is not None else None
        # No implied-price fallback on the indexed path
        if price is None:
            continue

        security_value += shares * price

    return ValuationResult.of(cash_balance, security_value)
