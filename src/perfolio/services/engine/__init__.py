"""Computation engine: session, workers and the consumer-side store."""

from perfolio.services.engine.config import EngineConfig
from perfolio.services.engine.models import (
    KPIData,
    KPIPeriod,
    KPIStatus,
    StoreStatus,
    ValuationData,
    WorkerLifecycle,
)
from perfolio.services.engine.session import EngineSession, parse_window
from perfolio.services.engine.store import PortfolioStore
from perfolio.services.engine.worker import EngineWorker, ParserWorker

__all__ = [
    "EngineConfig",
    "EngineSession",
    "EngineWorker",
    "KPIData",
    "KPIPeriod",
    "KPIStatus",
    "ParserWorker",
    "PortfolioStore",
    "StoreStatus",
    "ValuationData",
    "WorkerLifecycle",
    "parse_window",
]
