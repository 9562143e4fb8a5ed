"""Output writers for computed results.

Handles the JSON KPI report, valuation series exports and periodic return
tables produced by the CLI.
"""

import json
from dataclasses import asdict
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from structlog import get_logger

from perfolio.services.engine.models import KPIData, ValuationData
from perfolio.services.performance import CapitalFlowResult, RiskSummary, YearlyReturn

logger = get_logger(__name__)


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and date types."""

    def default(self, o: Any) -> Any:
        """Convert Decimal to float and dates to ISO strings."""
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, date):
            return o.isoformat()
        return super().default(o)


def _write(data: Any, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w") as f:
        json.dump(data, f, indent=2, cls=DecimalEncoder)


def write_kpi_report(
    kpi: KPIData,
    output_path: Path,
    capital_flow: Optional[CapitalFlowResult] = None,
    risk: Optional[RiskSummary] = None,
) -> None:
    """
    Write KPI figures for one window to JSON.

    Args:
        kpi: KPI result from the engine
        output_path: Path to write JSON file
        capital_flow: Optional capital flow breakdown for the same window
        risk: Optional risk summary for the same window

    Example:
        >>> write_kpi_report(kpi, Path("reports/kpi_2023.json"), capital_flow=flow)
    """
    data: dict[str, Any] = {"kpi": kpi.model_dump()}
    if capital_flow is not None:
        data["capital_flow"] = asdict(capital_flow)
    if risk is not None:
        data["risk"] = asdict(risk)

    _write(data, output_path)

    logger.info("report.kpi_written", path=str(output_path), size_bytes=output_path.stat().st_size)


def write_valuation_series_json(series: list[ValuationData], output_path: Path) -> None:
    """
    Write a valuation series to JSON, one object per date.

    Example:
        >>> write_valuation_series_json(series, Path("reports/valuations.json"))
    """
    if not series:
        logger.warning("report.valuation_series_empty", path=str(output_path))
        return

    data = [point.model_dump() for point in series]
    _write(data, output_path)

    logger.info(
        "report.valuation_series_written",
        path=str(output_path),
        rows=len(series),
        size_bytes=output_path.stat().st_size,
    )


def write_returns_json(
    output_path: Path,
    monthly: Optional[dict[int, list[float]]] = None,
    yearly: Optional[list[YearlyReturn]] = None,
) -> None:
    """
    Write periodic returns to JSON.

    Args:
        output_path: Path to write JSON file
        monthly: Year -> twelve monthly returns
        yearly: Yearly returns
    """
    data = {
        "monthly": {str(year): values for year, values in (monthly or {}).items()},
        "yearly": [{"year": entry.year, "return": entry.value} for entry in yearly or []],
    }
    _write(data, output_path)

    logger.info(
        "report.returns_written",
        path=str(output_path),
        years=len(data["yearly"]),
        size_bytes=output_path.stat().st_size,
    )
