"""
Portfolio Store.

Consumer-side orchestrator. The store holds what a display layer renders
(load status, the loaded state, the current KPI figures) and drives the
workers:

- ``load_document``: parse in a one-shot ParserWorker, initialize the
  EngineWorker with the serialized state, then precompute the configured KPI
  windows (a failing precomputation is logged and does not fail the load)
- ``request_kpi``: answer from the KPI cache when possible; otherwise assign
  a new request id, mark the current figures stale and ask the worker. Only
  the most recent request may update the store; results of superseded
  requests are dropped on arrival
- ``reset``: terminate the worker and clear everything

Errors of a KPI request never touch the loaded state or the KPI cache.
"""

import time
from collections.abc import Callable
from datetime import date
from typing import Optional

from perfolio.domain.errors import EngineError, parse_engine_error
from perfolio.domain.models import PortfolioState
from perfolio.domain.serialization import serialize_state
from perfolio.services.engine.config import EngineConfig
from perfolio.services.engine.models import (
    KPIData,
    KPIPeriod,
    KPIStatus,
    StoreStatus,
    WorkerLifecycle,
    kpi_cache_key,
)
from perfolio.services.engine.session import DateLike
from perfolio.services.engine.worker import EngineWorker, ParserWorker
from perfolio.system import LoggerFactory


def _date_key(value: DateLike) -> str:
    return value.isoformat() if isinstance(value, date) else str(value)


class PortfolioStore:
    """
    Holds loaded data and KPI state, and talks to the engine worker.

    Attributes:
        status: Document load status
        data: Loaded PortfolioState (None until loaded)
        error: Load error message
        kpi_status: Status of the latest KPI request
        kpi_data: Latest KPI figures (kept while a newer request is pending)
        kpi_error: Error of the latest KPI request
        kpi_stale: True while ``kpi_data`` belongs to an older request
        kpi_timestamp: Epoch seconds of the last KPI update
        kpi_cache: KPI results by ``"start|end"`` key
        last_request_id: Id of the most recent uncached KPI request; increases
            for the lifetime of the store, across reloads and resets
        generation: Incremented on every load and reset; results computed for
            an earlier generation are dropped
        worker_lifecycle: Lifecycle of the engine worker
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        worker_factory: Optional[Callable[[], EngineWorker]] = None,
        parser_worker_factory: Callable[[], ParserWorker] = ParserWorker,
    ) -> None:
        """
        Initialize store.

        Args:
            config: Engine configuration
            worker_factory: Creates engine workers (defaults to EngineWorker(config))
            parser_worker_factory: Creates one-shot parser workers
        """
        self._config = config or EngineConfig()
        self._worker_factory = worker_factory or (lambda: EngineWorker(self._config))
        self._parser_worker_factory = parser_worker_factory
        self._worker: Optional[EngineWorker] = None
        self._logger = LoggerFactory.get_logger("engine.store")

        self.worker_lifecycle = WorkerLifecycle.UNINITIALIZED
        self.last_request_id = 0
        self.generation = 0
        self._clear()

    def _clear(self) -> None:
        self.generation += 1
        self.status = StoreStatus.IDLE
        self.data: Optional[PortfolioState] = None
        self.error: Optional[str] = None
        self._clear_kpi()

    def _clear_kpi(self) -> None:
        self.kpi_status = KPIStatus.IDLE
        self.kpi_data: Optional[KPIData] = None
        self.kpi_error: Optional[EngineError] = None
        self.kpi_stale = False
        self.kpi_timestamp = 0.0
        self.kpi_cache: dict[str, KPIData] = {}

    # ------------------------------------------------------------------
    # Worker lifecycle
    # ------------------------------------------------------------------

    def _get_or_create_worker(self) -> EngineWorker:
        """Reuse the ready worker, otherwise replace it with a fresh one."""
        if self._worker is not None and self.worker_lifecycle == WorkerLifecycle.READY:
            return self._worker

        self._terminate_worker()
        self._worker = self._worker_factory()
        self.worker_lifecycle = WorkerLifecycle.INITIALIZING
        return self._worker

    def _terminate_worker(self) -> None:
        if self._worker is not None:
            self._worker.terminate()
            self._worker = None
            self.worker_lifecycle = WorkerLifecycle.TERMINATED

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def load_document(self, text: str, today: Optional[date] = None) -> None:
        """
        Parse a document, initialize the engine with it and precompute KPIs.

        Failures leave the store in ERROR status with no data loaded. A load
        overtaken by a newer load or a reset leaves the store untouched.
        """
        self.generation += 1
        generation = self.generation
        self.status = StoreStatus.LOADING
        self.error = None
        started = time.perf_counter()

        try:
            state = await self._parser_worker_factory().parse(text)
            if generation != self.generation:
                self._logger.debug("store.load_superseded", generation=generation)
                return

            # A fresh worker per document; the previous session is discarded
            self._terminate_worker()
            worker = self._get_or_create_worker()
            await worker.init(serialize_state(state))
        except Exception as exc:
            if generation != self.generation:
                self._logger.debug("store.load_superseded", generation=generation, error=str(exc))
                return
            self._logger.error("store.load_failed", error=str(exc), error_type=exc.__class__.__name__)
            self.worker_lifecycle = WorkerLifecycle.ERROR
            self.status = StoreStatus.ERROR
            self.data = None
            self.error = str(exc)
            return

        if generation != self.generation:
            self._logger.debug("store.load_superseded", generation=generation)
            return

        self.worker_lifecycle = WorkerLifecycle.READY
        self.data = state
        self._clear_kpi()
        self.status = StoreStatus.READY
        self._logger.info("store.loaded", duration_ms=round((time.perf_counter() - started) * 1000, 2))

        await self.precompute_kpi(today=today)

    async def request_kpi(self, start: DateLike, end: DateLike) -> None:
        """Compute (or fetch from cache) KPI for a window and publish it."""
        cache_key = kpi_cache_key(_date_key(start), _date_key(end))
        cached = self.kpi_cache.get(cache_key)
        if cached is not None:
            self.kpi_data = cached
            self.kpi_status = KPIStatus.READY
            self.kpi_stale = False
            self.kpi_error = None
            self.kpi_timestamp = time.time()
            return

        self.last_request_id += 1
        request_id = self.last_request_id
        generation = self.generation
        self.kpi_status = KPIStatus.CALCULATING
        self.kpi_stale = self.kpi_data is not None
        self.kpi_error = None

        try:
            result = await self._get_or_create_worker().calculate_kpi(start, end)
        except Exception as exc:
            if not self._is_current(request_id, generation):
                self._logger.debug("store.kpi_error_discarded", request_id=request_id, key=cache_key)
                return
            self._logger.warning("store.kpi_failed", key=cache_key, error=str(exc))
            self.kpi_status = KPIStatus.ERROR
            self.kpi_error = parse_engine_error(exc)
            return

        if not self._is_current(request_id, generation):
            self._logger.debug(
                "store.kpi_result_discarded",
                request_id=request_id,
                latest=self.last_request_id,
                generation=generation,
                key=cache_key,
            )
            return

        self.kpi_cache[cache_key] = result
        self.kpi_data = result
        self.kpi_status = KPIStatus.READY
        self.kpi_stale = False
        self.kpi_timestamp = time.time()

    async def precompute_kpi(self, today: Optional[date] = None) -> None:
        """Fill the KPI cache for the configured windows (all-time, year-to-date)."""
        if self.data is None:
            return

        generation = self.generation
        today = today or date.today()
        periods = []
        for name in self._config.precompute_periods:
            if name == "all_time":
                start = self.data.first_transaction_date() or today
            else:
                start = date(today.year, 1, 1)
            periods.append(
                KPIPeriod(key=kpi_cache_key(start.isoformat(), today.isoformat()), start_date=start, end_date=today)
            )

        try:
            results = await self._get_or_create_worker().calculate_all_kpi(periods)
        except Exception as exc:
            if generation == self.generation:
                self._logger.error("store.precompute_failed", error=str(exc), periods=[p.key for p in periods])
            return

        if generation != self.generation:
            self._logger.debug("store.precompute_discarded", generation=generation)
            return

        self.kpi_cache.update(results)
        self._logger.info("store.precomputed", keys=sorted(results))

    def reset(self) -> None:
        """Terminate the worker and discard all state."""
        self._terminate_worker()
        self._clear()

    def _is_current(self, request_id: int, generation: int) -> bool:
        """True if no newer request, load or reset happened since the request started."""
        return request_id == self.last_request_id and generation == self.generation
