"""
Engine and parser workers.

Computation never runs on the caller's event loop:

- ``ParserWorker`` parses one document in a dedicated one-shot thread and
  shuts that thread down afterwards
- ``EngineWorker`` owns a single computation thread and the EngineSession
  living on it; every request is awaited through an executor future

State enters the engine worker only in serialized form (``init``), so the
worker never shares live objects with the caller.
"""

import asyncio
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional, TypeVar

from perfolio.domain.errors import EngineErrorCode, EngineException
from perfolio.domain.models import PortfolioState
from perfolio.domain.serialization import SerializedPortfolioState
from perfolio.ingestion import DocumentParser
from perfolio.services.engine.config import EngineConfig
from perfolio.services.engine.models import KPIData, KPIPeriod, ValuationData
from perfolio.services.engine.session import DateLike, EngineSession
from perfolio.system import LoggerFactory

T = TypeVar("T")


class ParserWorker:
    """One-shot, stateless document parsing off the event loop."""

    def __init__(self, parser: Optional[DocumentParser] = None) -> None:
        self._parser = parser or DocumentParser()
        self._logger = LoggerFactory.get_logger("engine.parser_worker")

    async def parse(self, text: str) -> PortfolioState:
        """
        Parse a document in its own thread.

        Raises:
            SchemaValidationError: If the document is malformed
        """
        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="perfolio-parser")
        started = time.perf_counter()
        try:
            state = await loop.run_in_executor(executor, self._parser.parse, text)
        finally:
            executor.shutdown(wait=False)

        self._logger.debug("parser_worker.completed", duration_ms=round((time.perf_counter() - started) * 1000, 2))
        return state


class EngineWorker:
    """
    Asynchronous facade over an EngineSession running on one dedicated thread.

    Requests are served in submission order. ``init`` may be called again to
    replace the session; ``terminate`` stops the thread for good.

    Example:
        >>> worker = EngineWorker()
        >>> await worker.init(serialize_state(state))
        >>> kpi = await worker.calculate_kpi("2023-01-01", "2023-12-31")
        >>> worker.terminate()
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        session_factory: Callable[[SerializedPortfolioState, EngineConfig], EngineSession] = EngineSession.from_serialized,
    ) -> None:
        """
        Initialize worker.

        Args:
            config: Engine configuration handed to each session
            session_factory: Builds a session from serialized state
        """
        self._config = config or EngineConfig()
        self._session_factory = session_factory
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="perfolio-engine")
        self._session: Optional[EngineSession] = None
        self._terminated = False
        self._logger = LoggerFactory.get_logger("engine.worker")

    @property
    def is_initialized(self) -> bool:
        return self._session is not None

    @property
    def is_terminated(self) -> bool:
        return self._terminated

    async def init(self, serialized_state: SerializedPortfolioState) -> None:
        """Build a new session from serialized state, replacing any previous one."""
        started = time.perf_counter()
        self._session = await self._submit(self._session_factory, serialized_state, self._config)
        self._logger.info("engine.worker.initialized", duration_ms=round((time.perf_counter() - started) * 1000, 2))

    async def calculate_kpi(self, start: DateLike, end: DateLike) -> KPIData:
        session = self._require_session()
        return await self._submit(session.calculate_kpi, start, end)

    async def calculate_valuation(self, day: DateLike) -> ValuationData:
        session = self._require_session()
        return await self._submit(session.calculate_valuation, day)

    async def calculate_valuation_series(self, days: Sequence[DateLike]) -> list[ValuationData]:
        session = self._require_session()
        return await self._submit(session.calculate_valuation_series, list(days))

    async def calculate_all_kpi(self, periods: Iterable[KPIPeriod]) -> dict[str, KPIData]:
        session = self._require_session()
        return await self._submit(session.calculate_all_kpi, list(periods))

    def terminate(self) -> None:
        """Stop the computation thread and drop the session. Pending requests fail."""
        if self._terminated:
            return
        self._terminated = True
        self._session = None
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._logger.debug("engine.worker.terminated")

    def _require_session(self) -> EngineSession:
        if self._terminated:
            raise EngineException(EngineErrorCode.WORKER_TERMINATED, "Engine worker has been terminated")
        if self._session is None:
            raise EngineException(
                EngineErrorCode.STATE_NOT_INITIALIZED,
                "Engine worker state not initialized. Call init() first.",
            )
        return self._session

    async def _submit(self, fn: Callable[..., T], *args: Any) -> T:
        """Run ``fn`` on the computation thread; failures surface as EngineException."""
        if self._terminated:
            raise EngineException(EngineErrorCode.WORKER_TERMINATED, "Engine worker has been terminated")

        loop = asyncio.get_running_loop()
        try:
            future = loop.run_in_executor(self._executor, fn, *args)
        except RuntimeError as exc:
            # Executor shut down between the check above and submission
            raise EngineException(EngineErrorCode.WORKER_TERMINATED, "Engine worker has been terminated") from exc

        try:
            return await future
        except asyncio.CancelledError:
            if self._terminated:
                raise EngineException(
                    EngineErrorCode.WORKER_TERMINATED, "Engine worker terminated while a request was pending"
                ) from None
            raise
        except EngineException:
            raise
        except Exception as exc:
            raise EngineException(
                EngineErrorCode.CALCULATION_OVERFLOW, str(exc) or exc.__class__.__name__, recoverable=True
            ) from exc
