"""Configuration for the computation engine.

Configuration options control:
- Size of the per-session point-valuation cache
- Newton-Raphson parameters for money-weighted return
- Which KPI windows are precomputed right after a document is loaded
"""

from typing import Literal

from pydantic import BaseModel, Field

PrecomputePeriod = Literal["all_time", "ytd"]


class EngineConfig(BaseModel):
    """
    Configuration for the engine session and worker.

    The valuation cache is coarse: once it grows past
    ``valuation_cache_limit`` entries the oldest half is dropped in one pass.
    """

    valuation_cache_limit: int = Field(
        default=1000,
        gt=1,
        description="Maximum cached point valuations before the oldest half is evicted",
    )

    irr_max_iterations: int = Field(
        default=100,
        gt=0,
        description="Maximum Newton-Raphson iterations for money-weighted return",
    )
    irr_tolerance: float = Field(
        default=1e-7,
        gt=0,
        description="Stop when successive IRR estimates differ by less than this",
    )

    precompute_periods: list[PrecomputePeriod] = Field(
        default_factory=lambda: ["all_time", "ytd"],
        description="KPI windows computed in batch immediately after load",
    )
