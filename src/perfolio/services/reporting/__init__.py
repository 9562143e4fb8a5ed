"""JSON exports of computed results."""

from perfolio.services.reporting.writers import (
    DecimalEncoder,
    write_kpi_report,
    write_returns_json,
    write_valuation_series_json,
)

__all__ = [
    "DecimalEncoder",
    "write_kpi_report",
    "write_returns_json",
    "write_valuation_series_json",
]
