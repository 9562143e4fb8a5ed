"""Valuation, KPI and periodic return commands."""

import asyncio
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from perfolio.cli.commands.common import DATE_FORMATS, format_money, format_pct, load_state
from perfolio.domain.errors import EngineException
from perfolio.domain.models import PortfolioState
from perfolio.domain.serialization import serialize_state
from perfolio.services.engine import EngineWorker, KPIData, ValuationData, parse_window
from perfolio.services.performance import (
    calculate_capital_flow,
    calculate_monthly_returns,
    calculate_risk_summary,
    calculate_yearly_returns,
)
from perfolio.services.reporting import write_kpi_report, write_returns_json, write_valuation_series_json
from perfolio.services.valuation import ValuationIndex, calculate_valuation, calculate_valuation_fast
from perfolio.system import get_system_config

console = Console()

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def _parse_dates(value: Optional[str]) -> list[date]:
    if not value:
        return []
    try:
        return [datetime.strptime(part.strip(), "%Y-%m-%d").date() for part in value.split(",") if part.strip()]
    except ValueError as e:
        raise click.BadParameter(f"expected comma-separated YYYY-MM-DD dates ({e})") from e


def _valuate(state: PortfolioState, days: list[date], fast: bool) -> list[ValuationData]:
    index = ValuationIndex.build(state) if fast else None
    series = []
    for day in days:
        if index is not None:
            result = calculate_valuation_fast(index, day, state.securities)
        else:
            result = calculate_valuation(state, day)
        series.append(
            ValuationData(
                date=day,
                cash_balance=result.cash_balance,
                security_value=result.security_value,
                total_value=result.total_value,
            )
        )
    return series


async def _compute_kpi(state: PortfolioState, start: date, end: date) -> KPIData:
    worker = EngineWorker(get_system_config().engine)
    try:
        await worker.init(serialize_state(state))
        return await worker.calculate_kpi(start, end)
    finally:
        worker.terminate()


@click.command("valuate")
@click.argument("document", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--date",
    "-d",
    "valuation_date",
    type=click.DateTime(formats=DATE_FORMATS),
    required=True,
    help="Valuation date (YYYY-MM-DD)",
)
@click.option("--series", help="Additional comma-separated dates (YYYY-MM-DD,YYYY-MM-DD,...)")
@click.option("--fast", is_flag=True, help="Use the valuation index (no implied-price fallback)")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the series to JSON")
def valuate_command(
    document: Path,
    valuation_date: datetime,
    series: Optional[str],
    fast: bool,
    output: Optional[Path],
):
    """
    Value the portfolio at one or more dates.

    \b
    Examples:
        perfolio valuate portfolio.xml --date 2023-01-03
        perfolio valuate portfolio.xml -d 2023-12-31 --series 2023-03-31,2023-06-30 --fast
    """
    state = load_state(document, console)
    days = sorted({valuation_date.date(), *_parse_dates(series)})
    results = _valuate(state, days, fast)

    table = Table(
        title=f"Valuation ({'indexed' if fast else 'direct'})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Date", style="cyan", no_wrap=True)
    table.add_column("Cash", justify="right")
    table.add_column("Securities", justify="right")
    table.add_column("Total", justify="right", style="bold green")
    for point in results:
        table.add_row(
            point.date.isoformat(),
            format_money(point.cash_balance),
            format_money(point.security_value),
            format_money(point.total_value, state.base_currency),
        )
    console.print(table)

    if output:
        write_valuation_series_json(results, output)
        console.print(f"[dim]Written: {output}[/dim]")


@click.command("kpi")
@click.argument("document", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--start",
    "-s",
    "start_date",
    type=click.DateTime(formats=DATE_FORMATS),
    required=True,
    help="Window start (YYYY-MM-DD)",
)
@click.option(
    "--end",
    "-e",
    "end_date",
    type=click.DateTime(formats=DATE_FORMATS),
    required=True,
    help="Window end (YYYY-MM-DD)",
)
@click.option("--risk/--no-risk", default=True, help="Include drawdown and volatility (default: enabled)")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the report to JSON")
@click.option("--save", is_flag=True, help="Write the report to the configured reports directory")
def kpi_command(
    document: Path,
    start_date: datetime,
    end_date: datetime,
    risk: bool,
    output: Optional[Path],
    save: bool,
):
    """
    Compute NAV, TWR, IRR and capital flow for a window.

    \b
    Examples:
        perfolio kpi portfolio.xml --start 2023-01-01 --end 2023-12-31
        perfolio kpi portfolio.xml -s 2023-01-01 -e 2023-12-31 --no-risk -o reports/kpi.json
    """
    state = load_state(document, console)

    try:
        start, end = parse_window(start_date.date(), end_date.date())
        kpi = asyncio.run(_compute_kpi(state, start, end))
    except EngineException as e:
        console.print(f"[red]KPI calculation failed ({e.code.value}): {e.message}[/red]")
        if e.recoverable:
            console.print("[yellow]The error is recoverable; retrying may succeed.[/yellow]")
        sys.exit(1)

    capital_flow = calculate_capital_flow(state, start, end)
    risk_summary = calculate_risk_summary(state, start, end) if risk else None

    table = Table(title=f"KPI {start} → {end}", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")
    table.add_row("NAV", format_money(kpi.nav, state.base_currency))
    table.add_row("TWR", format_pct(kpi.twr))
    table.add_row("IRR", format_pct(kpi.irr))
    table.add_row("Deposited", format_money(capital_flow.deposited, state.base_currency))
    table.add_row("Withdrawn", format_money(capital_flow.withdrawn, state.base_currency))
    table.add_row("Net invested", format_money(kpi.capital_invested, state.base_currency))
    if risk_summary is not None:
        table.add_row("Annualized TWR", format_pct(risk_summary.annualized_twr))
        table.add_row("Max drawdown", format_pct(-risk_summary.max_drawdown))
        table.add_row("Longest drawdown", f"{risk_summary.longest_drawdown_days} days")
        table.add_row("Volatility (ann.)", f"{risk_summary.volatility * 100:.2f}%")
    console.print(table)
    console.print(f"[dim]Calculated in {kpi.duration_ms:.0f}ms[/dim]")

    if save and not output:
        output = Path(get_system_config().output.reports_root) / f"kpi_{start}_{end}.json"
    if output:
        write_kpi_report(kpi, output, capital_flow=capital_flow, risk=risk_summary)
        console.print(f"[dim]Written: {output}[/dim]")


@click.command("returns")
@click.argument("document", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--year", "-y", type=int, help="Year for monthly returns (default: current year)")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write returns to JSON")
def returns_command(document: Path, year: Optional[int], output: Optional[Path]):
    """
    Show monthly returns for a year and yearly returns since the first full year.

    \b
    Examples:
        perfolio returns portfolio.xml
        perfolio returns portfolio.xml --year 2023 -o reports/returns.json
    """
    state = load_state(document, console)
    year = year or date.today().year

    monthly = calculate_monthly_returns(state, year)
    yearly = calculate_yearly_returns(state)

    monthly_table = Table(title=f"Monthly Returns {year}", show_header=True, header_style="bold cyan")
    monthly_table.add_column("Month", style="cyan")
    monthly_table.add_column("TWR", justify="right")
    for name, value in zip(MONTH_NAMES, monthly):
        monthly_table.add_row(name, format_pct(value))
    console.print(monthly_table)

    if yearly:
        yearly_table = Table(title="Yearly Returns", show_header=True, header_style="bold cyan")
        yearly_table.add_column("Year", style="cyan")
        yearly_table.add_column("TWR", justify="right")
        for entry in yearly:
            yearly_table.add_row(str(entry.year), format_pct(entry.value))
        console.print(yearly_table)
    else:
        console.print("[yellow]No full year of history yet[/yellow]")

    if output:
        write_returns_json(output, monthly={year: monthly}, yearly=yearly)
        console.print(f"[dim]Written: {output}[/dim]")
