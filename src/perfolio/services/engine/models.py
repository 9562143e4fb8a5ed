"""Result and request models exchanged with the engine."""

import datetime as dt
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class KPIData(BaseModel):
    """KPI figures for one window."""

    model_config = ConfigDict(frozen=True)

    nav: Decimal = Field(description="Total valuation at end_date")
    twr: float = Field(description="Time-weighted return (ratio)")
    irr: float = Field(description="Money-weighted return (annual rate)")
    capital_invested: Decimal = Field(description="Net external capital within the window")
    start_date: dt.date
    end_date: dt.date
    duration_ms: float = Field(description="Computation time")


class ValuationData(BaseModel):
    """Point valuation for one date."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    cash_balance: Decimal
    security_value: Decimal
    total_value: Decimal


class KPIPeriod(BaseModel):
    """Named window for batch KPI computation."""

    model_config = ConfigDict(frozen=True)

    key: str
    start_date: dt.date
    end_date: dt.date


class WorkerLifecycle(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    INITIALIZING = "INITIALIZING"
    READY = "READY"
    ERROR = "ERROR"
    TERMINATED = "TERMINATED"


class StoreStatus(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    READY = "READY"
    ERROR = "ERROR"


class KPIStatus(str, Enum):
    IDLE = "IDLE"
    CALCULATING = "CALCULATING"
    READY = "READY"
    ERROR = "ERROR"


def kpi_cache_key(start: str, end: str) -> str:
    return f"{start}|{end}"
