"""Unit tests for perfolio.services.performance.twr."""

from datetime import date

import pytest

from perfolio.services.performance import calculate_twr

DAY_1 = date(2023, 1, 1)
DAY_2 = date(2023, 1, 2)
DAY_3 = date(2023, 1, 3)


@pytest.fixture
def growing_state(make_transaction, make_security, make_state):
    """Price grows 10% a day; a second deposit is invested on day 2."""
    return make_state(
        [
            make_transaction(DAY_1, "DEPOSIT", "100"),
            make_transaction(DAY_1, "BUY", "100", "s1", "1"),
            make_transaction(DAY_2, "DEPOSIT", "100"),
            make_transaction(DAY_2, "BUY", "100", "s1", "0.90909091"),
        ],
        [make_security("s1", {DAY_1: "100", DAY_2: "110", DAY_3: "121"})],
    )


class TestCalculateTwr:
    """Time-weighted return with flow neutralization."""

    def test_deposits_do_not_count_as_performance(self, growing_state):
        # Act
        twr = calculate_twr(growing_state, DAY_1, DAY_3)

        # Assert: two 10% days chain to 15.5% regardless of the second deposit
        assert twr == pytest.approx(0.155, abs=1e-6)

    def test_single_day(self, growing_state):
        assert calculate_twr(growing_state, DAY_2, DAY_3) == pytest.approx(0.1, abs=1e-6)

    def test_withdrawal_is_neutral(self, make_transaction, make_state):
        state = make_state(
            [
                make_transaction(DAY_1, "DEPOSIT", "1000"),
                make_transaction(DAY_2, "WITHDRAWAL", "500"),
            ]
        )

        assert calculate_twr(state, DAY_1, DAY_3) == pytest.approx(0.0)

    def test_empty_window(self, growing_state):
        assert calculate_twr(growing_state, DAY_3, DAY_3) == 0.0
        assert calculate_twr(growing_state, DAY_3, DAY_1) == 0.0

    def test_no_value_contributes_nothing(self, make_state):
        assert calculate_twr(make_state([]), DAY_1, DAY_3) == 0.0

    def test_golden_window(self, golden_state):
        # No flows after the start, so TWR is the plain value change
        assert calculate_twr(golden_state, DAY_1, date(2023, 1, 31)) == pytest.approx(1981 / 2000 - 1)
