"""
Engine Session.

A session owns everything derived from one loaded document: the
PortfolioState, its ValuationIndex and a bounded point-valuation cache. It
is built from serialized state, so nothing with live identity is shared with
the caller, and is simply dropped on reload or reset. Sessions are
independent; any number can coexist.

All methods are synchronous and CPU-bound. ``EngineWorker`` runs them off
the caller's event loop.
"""

import time
from collections.abc import Iterable
from datetime import date
from typing import Optional, Union

from perfolio.domain.errors import EngineErrorCode, EngineException
from perfolio.domain.models import PortfolioState
from perfolio.domain.serialization import SerializedPortfolioState, deserialize_state
from perfolio.services.engine.config import EngineConfig
from perfolio.services.engine.models import KPIData, KPIPeriod, ValuationData
from perfolio.services.performance import calculate_capital_flow, calculate_irr, calculate_twr
from perfolio.services.valuation import ValuationIndex, calculate_valuation_fast
from perfolio.system import LoggerFactory

DateLike = Union[date, str]


def parse_window_date(value: DateLike) -> date:
    """
    Coerce an ISO date string (or date) to a date.

    Raises:
        EngineException: INVALID_DATE_RANGE if the value is not a valid date
    """
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise EngineException(EngineErrorCode.INVALID_DATE_RANGE, f"Invalid date: {value!r}") from exc


def parse_window(start: DateLike, end: DateLike) -> tuple[date, date]:
    """
    Validate a ``[start, end]`` window.

    Raises:
        EngineException: INVALID_DATE_RANGE for unparsable bounds or start after end
    """
    start_date = parse_window_date(start)
    end_date = parse_window_date(end)
    if start_date > end_date:
        raise EngineException(
            EngineErrorCode.INVALID_DATE_RANGE,
            f"Start date {start_date.isoformat()} is after end date {end_date.isoformat()}",
        )
    return start_date, end_date


class EngineSession:
    """
    Computation context for one loaded document.

    Example:
        >>> session = EngineSession.from_serialized(serialize_state(state))
        >>> kpi = session.calculate_kpi("2023-01-01", "2023-01-03")
        >>> float(kpi.nav)
        1981.0
    """

    def __init__(self, state: PortfolioState, config: Optional[EngineConfig] = None) -> None:
        """
        Initialize session and build the valuation index.

        Args:
            state: Ingested portfolio state
            config: Engine configuration (defaults to EngineConfig())
        """
        self._config = config or EngineConfig()
        self._logger = LoggerFactory.get_logger("engine.session")
        self._state = state
        self._index = ValuationIndex.build(state)
        # Insertion-ordered: oldest entries first
        self._valuation_cache: dict[date, ValuationData] = {}

    @classmethod
    def from_serialized(
        cls, serialized: SerializedPortfolioState, config: Optional[EngineConfig] = None
    ) -> "EngineSession":
        """Rebuild state from its plain-data form and start a session on it."""
        started = time.perf_counter()
        session = cls(deserialize_state(serialized), config)
        session._logger.info(
            "engine.session.initialized",
            transactions=len(session.state.transactions),
            securities=len(session.state.securities),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return session

    @property
    def state(self) -> PortfolioState:
        return self._state

    @property
    def index(self) -> ValuationIndex:
        return self._index

    @property
    def cache_size(self) -> int:
        return len(self._valuation_cache)

    def calculate_valuation(self, day: DateLike) -> ValuationData:
        """
        Point valuation through the index, cached by date.

        Raises:
            EngineException: INVALID_DATE_RANGE for an unparsable date
        """
        target = parse_window_date(day)

        cached = self._valuation_cache.get(target)
        if cached is not None:
            return cached

        result = calculate_valuation_fast(self._index, target, self._state.securities)
        valuation = ValuationData(
            date=target,
            cash_balance=result.cash_balance,
            security_value=result.security_value,
            total_value=result.total_value,
        )

        if len(self._valuation_cache) > self._config.valuation_cache_limit:
            self._evict()

        self._valuation_cache[target] = valuation
        return valuation

    def calculate_valuation_series(self, days: Iterable[DateLike]) -> list[ValuationData]:
        return [self.calculate_valuation(day) for day in days]

    def calculate_kpi(self, start: DateLike, end: DateLike) -> KPIData:
        """
        NAV, TWR, IRR and net invested capital for ``[start, end]``.

        Raises:
            EngineException: INVALID_DATE_RANGE for a bad window,
                CALCULATION_OVERFLOW (recoverable) for any computation failure
        """
        start_date, end_date = parse_window(start, end)
        started = time.perf_counter()

        try:
            nav = self.calculate_valuation(end_date)
            twr = calculate_twr(self._state, start_date, end_date)
            irr = calculate_irr(
                self._state,
                start_date,
                end_date,
                max_iterations=self._config.irr_max_iterations,
                tolerance=self._config.irr_tolerance,
            )
            capital = calculate_capital_flow(self._state, start_date, end_date)
        except EngineException:
            raise
        except Exception as exc:
            self._logger.error(
                "engine.kpi.failed",
                start=start_date.isoformat(),
                end=end_date.isoformat(),
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            raise EngineException(
                EngineErrorCode.CALCULATION_OVERFLOW, str(exc) or exc.__class__.__name__, recoverable=True
            ) from exc

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        self._logger.debug(
            "engine.kpi.calculated",
            start=start_date.isoformat(),
            end=end_date.isoformat(),
            duration_ms=duration_ms,
        )

        return KPIData(
            nav=nav.total_value,
            twr=twr,
            irr=irr,
            capital_invested=capital.net_invested,
            start_date=start_date,
            end_date=end_date,
            duration_ms=duration_ms,
        )

    def calculate_all_kpi(self, periods: Iterable[KPIPeriod]) -> dict[str, KPIData]:
        """KPI for each named window, computed in order."""
        started = time.perf_counter()
        results = {period.key: self.calculate_kpi(period.start_date, period.end_date) for period in periods}
        self._logger.info(
            "engine.kpi.batch_calculated",
            periods=len(results),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return results

    def _evict(self) -> None:
        """Drop the oldest half of the valuation cache."""
        entries = list(self._valuation_cache.items())
        self._valuation_cache = dict(entries[len(entries) // 2 :])
        self._logger.debug("engine.cache.evicted", removed=len(entries) // 2, kept=len(self._valuation_cache))
