"""Unit tests for perfolio.services.valuation.service.

Tests cover:
- Golden valuations (cash, securities, total)
- Forward-filled prices
- Implied-price fallback for securities without market prices
- Counting mirrored transactions once
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from perfolio.domain.models import Account, Portfolio, PortfolioState
from perfolio.services.valuation import calculate_valuation, implied_prices, price_at_date

# ============================================================================
# Golden document
# ============================================================================


class TestGoldenValuation:
    """Valuations of the golden document."""

    @pytest.mark.parametrize(
        "day,cash,securities,total",
        [
            (date(2023, 1, 1), "75", "1925", "2000"),
            (date(2023, 1, 2), "75", "1924.4", "1999.4"),
            (date(2023, 1, 3), "1028", "953", "1981"),
            (date(2023, 1, 4), "1028", "953", "1981"),
        ],
    )
    def test_valuation(self, golden_state, day, cash, securities, total):
        # Act
        result = calculate_valuation(golden_state, day)

        # Assert
        assert result.cash_balance == Decimal(cash)
        assert result.security_value == Decimal(securities)
        assert result.total_value == Decimal(total)

    def test_before_first_transaction_is_zero(self, golden_state):
        result = calculate_valuation(golden_state, date(2022, 12, 31))

        assert result.total_value == 0

    def test_total_is_cash_plus_securities(self, golden_state):
        day = date(2023, 1, 1)
        while day <= date(2023, 1, 10):
            result = calculate_valuation(golden_state, day)
            assert result.total_value == result.cash_balance + result.security_value
            day += timedelta(days=1)


# ============================================================================
# Prices
# ============================================================================


class TestPriceAtDate:
    @pytest.fixture
    def security(self, make_security):
        return make_security("s1", {date(2023, 1, 2): "10", date(2023, 1, 5): "12"})

    def test_exact_date(self, security):
        assert price_at_date(security, date(2023, 1, 2)) == Decimal("10")

    def test_forward_fill(self, security):
        assert price_at_date(security, date(2023, 1, 4)) == Decimal("10")
        assert price_at_date(security, date(2024, 1, 1)) == Decimal("12")

    def test_before_first_price(self, security):
        assert price_at_date(security, date(2023, 1, 1)) is None

    def test_no_prices(self, make_security):
        assert price_at_date(make_security("s2"), date(2023, 1, 1)) is None


class TestImpliedPrices:
    """Implied unit price from the most recent transaction."""

    def test_latest_transaction_wins(self, make_transaction):
        transactions = [
            make_transaction(date(2023, 1, 1), "BUY", "1000", "s1", "10"),
            make_transaction(date(2023, 1, 3), "BUY", "600", "s1", "5"),
        ]

        assert implied_prices(transactions, date(2023, 1, 2)) == {"s1": Decimal("100")}
        assert implied_prices(transactions, date(2023, 1, 3)) == {"s1": Decimal("120")}

    def test_first_seen_wins_on_same_date(self, make_transaction):
        transactions = [
            make_transaction(date(2023, 1, 1), "BUY", "100", "s1", "1"),
            make_transaction(date(2023, 1, 1), "BUY", "200", "s1", "1"),
        ]

        assert implied_prices(transactions, date(2023, 1, 1)) == {"s1": Decimal("100")}

    def test_transactions_without_shares_are_ignored(self, make_transaction):
        transactions = [make_transaction(date(2023, 1, 1), "DIVIDEND", "5", "s1", None)]

        assert implied_prices(transactions, date(2023, 1, 1)) == {}


# ============================================================================
# Valuation rules
# ============================================================================


class TestCalculateValuation:
    """Replay rules of the direct valuation."""

    def test_implied_price_fallback(self, make_transaction, make_security, make_state):
        # Arrange: security without any market price
        state = make_state(
            [
                make_transaction(date(2023, 1, 1), "DEPOSIT", "2000"),
                make_transaction(date(2023, 1, 1), "BUY", "1000", "s1", "10"),
                make_transaction(date(2023, 1, 3), "BUY", "600", "s1", "5"),
            ],
            [make_security("s1")],
        )

        # Act
        early = calculate_valuation(state, date(2023, 1, 2))
        late = calculate_valuation(state, date(2023, 1, 5))

        # Assert
        assert early.security_value == Decimal("1000")
        assert late.security_value == Decimal("1800")
        assert late.cash_balance == Decimal("400")

    def test_market_price_preferred_over_implied(self, make_transaction, make_security, make_state):
        state = make_state(
            [make_transaction(date(2023, 1, 1), "BUY", "1000", "s1", "10")],
            [make_security("s1", {date(2023, 1, 1): "90"})],
        )

        assert calculate_valuation(state, date(2023, 1, 1)).security_value == Decimal("900")

    def test_cash_rules(self, make_transaction, make_state):
        state = make_state(
            [
                make_transaction(date(2023, 1, 1), "DEPOSIT", "1000"),
                make_transaction(date(2023, 1, 2), "INTEREST", "5"),
                make_transaction(date(2023, 1, 2), "DIVIDEND", "20"),
                make_transaction(date(2023, 1, 3), "FEES", "3"),
                make_transaction(date(2023, 1, 3), "TAXES", "2"),
                make_transaction(date(2023, 1, 4), "WITHDRAWAL", "100"),
                make_transaction(date(2023, 1, 4), "REMOVAL", "200"),
                make_transaction(date(2023, 1, 5), "TRANSFER_IN", "999"),
            ]
        )

        assert calculate_valuation(state, date(2023, 1, 5)).cash_balance == Decimal("720")

    def test_unknown_types_reported_once_per_call(self, make_transaction, make_state):
        # Arrange: three unknown transactions of two types
        state = make_state(
            [
                make_transaction(date(2023, 1, 1), "DEPOSIT", "100"),
                make_transaction(date(2023, 1, 1), "TRANSFER_IN", "10"),
                make_transaction(date(2023, 1, 2), "TRANSFER_IN", "20"),
                make_transaction(date(2023, 1, 2), "SPLIT", "0"),
            ]
        )

        # Act
        with capture_logs() as logs:
            result = calculate_valuation(state, date(2023, 1, 2))

        # Assert
        skipped = [entry for entry in logs if entry["event"] == "valuation.unknown_transaction_types_skipped"]
        assert result.cash_balance == Decimal("100")
        assert len(skipped) == 1
        assert skipped[0]["types"] == {"TRANSFER_IN": 2, "SPLIT": 1}

    def test_deliveries_move_shares_without_cash(self, make_transaction, make_security, make_state):
        state = make_state(
            [
                make_transaction(date(2023, 1, 1), "DELIVERY_INBOUND", "500", "s1", "5"),
                make_transaction(date(2023, 1, 2), "DELIVERY_OUTBOUND", "200", "s1", "2"),
            ],
            [make_security("s1", {date(2023, 1, 1): "100"})],
        )

        result = calculate_valuation(state, date(2023, 1, 2))

        assert result.cash_balance == 0
        assert result.security_value == Decimal("300")

    def test_holdings_of_unknown_security_are_skipped(self, make_transaction, make_state):
        state = make_state([make_transaction(date(2023, 1, 1), "BUY", "100", "ghost", "1")])

        result = calculate_valuation(state, date(2023, 1, 1))

        assert result.security_value == 0
        assert result.cash_balance == Decimal("-100")

    def test_negative_holdings_are_valued(self, make_transaction, make_security, make_state):
        state = make_state(
            [make_transaction(date(2023, 1, 1), "SELL", "100", "s1", "5")],
            [make_security("s1", {date(2023, 1, 1): "10"})],
        )

        assert calculate_valuation(state, date(2023, 1, 1)).security_value == Decimal("-50")

    def test_mirrored_transaction_counted_once(self, make_transaction, make_security):
        # Arrange: the same BUY is listed by the account and the portfolio
        deposit = make_transaction(date(2023, 1, 1), "DEPOSIT", "1000", uuid="dep")
        buy = make_transaction(date(2023, 1, 1), "BUY", "500", "s1", "5", uuid="buy")
        state = PortfolioState(
            base_currency="EUR",
            securities={"s1": make_security("s1", {date(2023, 1, 1): "100"})},
            transactions={"dep": deposit, "buy": buy},
            accounts=(Account(uuid="a", name="Cash", transaction_ids=("dep", "buy")),),
            portfolios=(Portfolio(uuid="p", name="Depot", transaction_ids=("buy",)),),
        )

        # Act
        result = calculate_valuation(state, date(2023, 1, 1))

        # Assert
        assert result.cash_balance == Decimal("500")
        assert result.security_value == Decimal("500")
        assert result.total_value == Decimal("1000")
