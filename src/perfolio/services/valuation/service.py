"""
Direct valuation by transaction replay.

``calculate_valuation`` replays every transaction of a PortfolioState up to
and including the target date:

- cash: DEPOSIT, SELL, DIVIDEND and INTEREST add; WITHDRAWAL, REMOVAL, BUY,
  FEES and TAXES subtract; deliveries and unknown types leave cash unchanged
- holdings: BUY and DELIVERY_INBOUND add shares, SELL and DELIVERY_OUTBOUND
  subtract them
- prices: the latest market price on or before the target date (forward
  fill); securities without one are valued at the implied price of their
  most recent transaction (amount / shares)

Cost is O(transactions) per call. See ``index.py`` for the indexed path.
"""

from bisect import bisect_right
from collections import Counter
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Optional

from perfolio.domain.models import PortfolioState, Security, Transaction
from perfolio.services.valuation.holdings import ZERO, calculate_holdings, cash_effect
from perfolio.services.valuation.models import ValuationResult
from perfolio.system import LoggerFactory

logger = LoggerFactory.get_logger(__name__)


def price_at_date(security: Security, day: date) -> Optional[Decimal]:
    """
    Forward-filled market price of a security.

    Returns:
        Value of the latest price entry dated on or before ``day``, or None
    """
    position = bisect_right([price.date for price in security.prices], day)
    if position == 0:
        return None
    return security.prices[position - 1].value


def implied_prices(transactions: Iterable[Transaction], day: date) -> dict[str, Decimal]:
    """
    Implied unit price per security from its most recent transaction.

    Only transactions on or before ``day`` with a positive share count
    qualify. A later transaction replaces an earlier one; on the same date
    the first one seen is kept.
    """
    latest: dict[str, tuple[date, Decimal]] = {}
    for tx in transactions:
        if not tx.security_uuid or not tx.shares or tx.shares <= 0:
            continue
        tx_day = tx.day
        if tx_day > day:
            continue
        existing = latest.get(tx.security_uuid)
        if existing is None or tx_day > existing[0]:
            latest[tx.security_uuid] = (tx_day, tx.amount / tx.shares)

    return {security_uuid: price for security_uuid, (_, price) in latest.items()}


def calculate_cash_balance(transactions: Iterable[Transaction], day: date) -> Decimal:
    """Cash at the end of ``day``; unknown types are skipped and reported once per call."""
    cash = ZERO
    skipped: Counter[str] = Counter()
    for tx in transactions:
        if tx.day > day:
            continue
        if tx.kind is None:
            skipped[tx.type] += 1
            continue
        cash += cash_effect(tx)

    if skipped:
        logger.debug("valuation.unknown_transaction_types_skipped", date=day.isoformat(), types=dict(skipped))
    return cash


def calculate_valuation(state: PortfolioState, day: date) -> ValuationResult:
    """
    Value the portfolio at the end of ``day``.

    Args:
        state: Ingested portfolio state
        day: Valuation date (time of day on transactions is ignored)

    Returns:
        ValuationResult with cash, securities and total value

    Example:
        >>> result = calculate_valuation(state, date(2023, 1, 3))
        >>> float(result.total_value)
        1981.0
    """
    # Canonical store: mirrored transactions are already counted once
    transactions = state.all_transactions()

    cash_balance = calculate_cash_balance(transactions, day)

    holdings = calculate_holdings(transactions, day)
    fallback_prices = implied_prices(transactions, day)

    security_value = ZERO
    for security_uuid, shares in holdings.items():
        security = state.securities.get(security_uuid)
        if security is None:
            continue

        price = price_at_date(security, day)
        if price is None:
            price = fallback_prices.get(security_uuid)
        if price is None:
            continue

        security_value += shares * price

    return ValuationResult.of(cash_balance, security_value)
